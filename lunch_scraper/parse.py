"""
Parsing layer for rendered restaurant pages.
Splits a page snapshot into days, stations and meal items and builds the domain model.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, NamedTuple, Optional
from bs4 import BeautifulSoup, Tag

from .config import SELECTORS
from .models import Macros, MacroTuple, Meal, Restaurant
from .normalize import format_opening_hours, map_allergens, parse_prices, price_group

logger = logging.getLogger(__name__)


class MenuStructureError(ValueError):
    """Raised when a required part of the menu markup is missing or malformed"""
    pass


class RestaurantPage(NamedTuple):
    name: str
    days: List[Tag]


def safe_text(element: Optional[Tag], default: str = "") -> str:
    """Whitespace-normalized text of an element"""
    if element is None:
        return default
    return " ".join(element.get_text().split())


def row_text(row: Tag) -> str:
    """Text of a table row with its cells separated by spaces"""
    return " ".join(row.get_text(" ").split())


def require(parent: Tag, selector: str, what: str) -> Tag:
    """Select the first match of selector or fail on broken markup"""
    element = parent.select_one(selector)
    if element is None:
        raise MenuStructureError(f"Missing {what} ({selector!r})")
    return element


def parse_restaurant_page(html: str, selectors: Dict[str, str] = SELECTORS) -> Optional[RestaurantPage]:
    """
    Parse a rendered restaurant page

    Returns:
        RestaurantPage with the restaurant name and its day blocks,
        or None when the page has no restaurant title
    """
    soup = BeautifulSoup(html, 'lxml')

    title = soup.select_one(selectors["title"])
    if title is None:
        return None

    return RestaurantPage(safe_text(title), soup.select(selectors["day"]))


def parse_opening_hours(day: Tag, selectors: Dict[str, str] = SELECTORS) -> Optional[str]:
    """Serving hours of a day block, e.g. "Mon: 10.30-14.00", or None"""
    heading = day.select_one(selectors["day_heading"])
    if heading is None:
        return None

    hours = day.select_one(selectors["day_hours"])
    if hours is None:
        return None

    return format_opening_hours(safe_text(heading), safe_text(hours))


def _number(text: str) -> Decimal:
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise MenuStructureError(f"Not a number: {text!r}")
    if not value.is_finite():
        raise MenuStructureError(f"Not a number: {text!r}")
    return value


def _calories(row: Tag) -> Decimal:
    # Last cell reads e.g. "754 kJ, 180 kcal"
    cells = row.find_all(['td', 'th'])
    text = safe_text(cells[-1]) if cells else row_text(row)
    parts = text.split()
    if len(parts) < 2:
        raise MenuStructureError(f"Unexpected energy row: {text!r}")
    return _number(parts[-2])


def _nutrient(row: Tag) -> Optional[tuple]:
    text = row_text(row).lower()

    # Saturated fat is already included in fat
    if text.startswith("saturated"):
        return None

    parts = text.split()
    if len(parts) != 3:
        raise MenuStructureError(f"Unexpected nutrient row: {text!r}")

    name, amount, unit = parts
    return name, MacroTuple(_number(amount), unit)


def parse_macros(element: Tag) -> Optional[Macros]:
    """
    Parse the nutrient table of a meal item

    The first row is the "per 100g" header and the second the energy row,
    every other row is "<name> <amount> <unit>". Returns None when the meal
    has no nutrient table.
    """
    rows = element.find_all('tr')[1:]
    if not rows:
        return None

    calories = MacroTuple(_calories(rows[0]), "kcal")

    nutrients = {}
    for row in rows[1:]:
        nutrient = _nutrient(row)
        if nutrient:
            name, value = nutrient
            nutrients[name] = value

    return Macros(calories=calories, nutrients=nutrients)


def parse_meal_name(item: Tag, station: str, selectors: Dict[str, str] = SELECTORS) -> Optional[str]:
    """Meal name with its station in brackets, None for an empty meal slot"""
    name = safe_text(require(item, selectors["meal_name"], "meal name"))

    if not name:
        return None
    if not station:
        return name

    return f"{name} [{station}]"


def parse_allergens(item: Tag, selectors: Dict[str, str] = SELECTORS) -> set:
    text = ",".join(safe_text(p) for p in item.select(selectors["allergens"]))
    return map_allergens(text)


def extract_meals(
    restaurant: Restaurant,
    station: str,
    price_line: str,
    items: List[Tag],
    selectors: Dict[str, str] = SELECTORS,
    logger: logging.Logger = logger
) -> int:
    """
    Add the meals of one station to the restaurant

    Stops at the first empty meal slot. Meals whose name is already on the
    restaurant's menu are dropped.

    Returns:
        Number of meals added
    """
    added = 0

    for item in items:
        name = parse_meal_name(item, station, selectors)
        if name is None:
            break

        prices = parse_prices(price_line)
        meal = Meal(
            name=name,
            allergens=frozenset(parse_allergens(item, selectors)),
            macros=parse_macros(item),
            price_group=price_group(prices),
            prices=prices,
        )

        if restaurant.add_meal(meal):
            added += 1
        else:
            logger.debug(f"Dropping duplicate meal {name!r} in {restaurant.name}")

    return added


def build_restaurant(
    name: str,
    days: List[Tag],
    selectors: Dict[str, str] = SELECTORS,
    logger: logging.Logger = logger
) -> Restaurant:
    """
    Build a restaurant from its day blocks

    Each day contributes its opening hours and the meals of every station.
    A station without its heading or price line raises MenuStructureError.
    """
    restaurant = Restaurant(name=name)
    opening_hours = []

    for day in days:
        hours = parse_opening_hours(day, selectors)
        if hours:
            opening_hours.append(hours)

        for package in day.select(selectors["menu_package"]):
            # e.g. "STATION 1-2 10.30-15.00"
            station = safe_text(require(package, selectors["station_heading"], "station heading"))
            price_line = safe_text(require(package, selectors["station_prices"], "price line"))

            extract_meals(
                restaurant,
                station,
                price_line,
                package.select(selectors["meal_item"]),
                selectors,
                logger
            )

    restaurant.opening_hours = "\n".join(opening_hours) or None
    logger.info(f"Parsed {len(restaurant.meals)} meals for {name}")
    return restaurant
