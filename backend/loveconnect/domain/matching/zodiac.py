"""Element-based zodiac compatibility table."""

from __future__ import annotations

from typing import Mapping, Optional

from loveconnect.domain.matching.models import ZodiacSign

ELEMENTS: Mapping[ZodiacSign, str] = {
	ZodiacSign.ARIES: "fire",
	ZodiacSign.LEO: "fire",
	ZodiacSign.SAGITTARIUS: "fire",
	ZodiacSign.TAURUS: "earth",
	ZodiacSign.VIRGO: "earth",
	ZodiacSign.CAPRICORN: "earth",
	ZodiacSign.GEMINI: "air",
	ZodiacSign.LIBRA: "air",
	ZodiacSign.AQUARIUS: "air",
	ZodiacSign.CANCER: "water",
	ZodiacSign.SCORPIO: "water",
	ZodiacSign.PISCES: "water",
}

SAME_ELEMENT = 0.9

# Keyed by unordered element pairs
ELEMENT_COMPATIBILITY: Mapping[frozenset[str], float] = {
	frozenset({"fire", "air"}): 0.8,
	frozenset({"earth", "water"}): 0.8,
	frozenset({"fire", "earth"}): 0.5,
	frozenset({"air", "water"}): 0.5,
	frozenset({"fire", "water"}): 0.3,
	frozenset({"earth", "air"}): 0.3,
}


def element_score(sign1: ZodiacSign, sign2: ZodiacSign) -> float:
	first, second = ELEMENTS[sign1], ELEMENTS[sign2]
	if first == second:
		return SAME_ELEMENT
	return ELEMENT_COMPATIBILITY[frozenset({first, second})]


class StaticZodiacTable:
	"""In-process zodiac table satisfying the ZodiacTable port."""

	async def compatibility(self, sign1: str, sign2: str) -> Optional[float]:
		first, second = ZodiacSign.parse(sign1), ZodiacSign.parse(sign2)
		if first is None or second is None:
			return None
		return element_score(first, second)
