"""
Normalization layer for the free-text fields of a menu page.
Turns price lines, allergen codes and serving-hour strings into typed values.
"""
import re
import logging
from decimal import Decimal
from typing import List, Set

from .models import Prices

logger = logging.getLogger(__name__)


# Optional sign, optional comma-grouped thousands, optional fractional part
PRICE_PATTERN = re.compile(r'^-?(?:0|[1-9]\d{0,2}(?:,\d{3})+|[1-9]\d*)(?:\.\d+)?$')

CENT = Decimal("0.01")

ALLERGENS = {
    "G": "Gluten-free",
    "L": "Lactose-free",
    "VL": "Low lactose",
    "M": "Dairy-free",
    "Veg": "Suitable for vegans",
    "VS": "Contains fresh garlic",
    "A": "Contains allergens",
}
UNKNOWN_ALLERGEN = ""

# Upper bounds (exclusive) on the student price, checked in order
PRICE_GROUPS = [
    (Decimal("2.80"), "Other"),
    (Decimal("3.30"), "Normal"),
    (Decimal("5.70"), "Deli"),
]
TOP_PRICE_GROUP = "Special"


def map_allergen(code: str) -> str:
    """Map one allergen abbreviation to its English label, '' when unknown"""
    return ALLERGENS.get(code.strip(), UNKNOWN_ALLERGEN)


def map_allergens(text: str) -> Set[str]:
    """
    Convert a comma separated allergen string to labels

    "A, G, Veg" -> {"Contains allergens", "Gluten-free", "Suitable for vegans"}
    """
    return {map_allergen(code) for code in text.split(',')}


def split_price_line(price_line: str) -> List[str]:
    """Split a price line into cleaned numeric tokens, dropping weight annotations"""
    tokens = [token for token in price_line.split('/') if 'g' not in token]
    return [
        token.replace(',', '.').replace('€', '').replace(' ', '')
        for token in tokens
    ]


def is_price(token: str) -> bool:
    return bool(PRICE_PATTERN.match(token))


def _to_decimal(token: str) -> Decimal:
    return Decimal(token.replace(',', '')).quantize(CENT)


def parse_prices(price_line: str) -> Prices:
    """
    Parse a station price line into per-clientele prices

    "3,10 / 7,70 / 9,20 €" -> students 3.10, researcher students 7.70,
    staff and others 9.20. A single price applies to everybody.
    Anything unparsable leaves every price unset.
    """
    tokens = split_price_line(price_line)

    if not tokens or not all(is_price(token) for token in tokens):
        logger.debug(f"No valid prices in {price_line!r}")
        return Prices()

    values = [_to_decimal(token) for token in tokens]

    if len(values) == 1:
        return Prices(students=values[0], researcher_students=values[0],
                      staff=values[0], others=values[0])
    if len(values) == 2:
        return Prices(students=values[0], researcher_students=values[1],
                      staff=values[1], others=values[1])
    if len(values) == 3:
        return Prices(students=values[0], researcher_students=values[1],
                      staff=values[2], others=values[2])
    if len(values) == 4:
        return Prices(students=values[0], researcher_students=values[1],
                      staff=values[2], others=values[3])

    logger.debug(f"Unexpected number of prices ({len(values)}) in {price_line!r}")
    return Prices()


def price_group(prices: Prices) -> str:
    """
    Classify a meal by its student price

    Unset prices count as zero, so callers should only trust the group
    when prices.is_set().
    """
    student_price = prices.students if prices.students is not None else Decimal(0)
    for upper_bound, group in PRICE_GROUPS:
        if student_price < upper_bound:
            return group
    return TOP_PRICE_GROUP


def format_opening_hours(day_heading: str, hours: str) -> str:
    """
    Build a display line for a day's serving hours

    ("Mon 16.6.", "Lunch served 10.30–14.00") -> "Mon: 10.30-14.00"
    """
    parts = day_heading.split()
    day = parts[0] if parts else ""
    return hours.replace("Lunch served ", f"{day}: ").replace("–", "-").strip()
