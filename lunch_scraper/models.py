from decimal import Decimal
from types import MappingProxyType
from typing import Optional, List, Dict, FrozenSet, Mapping, NamedTuple, Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MacroTuple(NamedTuple):
    amount: Decimal
    unit: str


class Prices(BaseModel):
    """Meal price per clientele; None until a price has been parsed"""
    model_config = ConfigDict(frozen=True)

    students: Optional[Decimal] = None
    researcher_students: Optional[Decimal] = None
    staff: Optional[Decimal] = None
    others: Optional[Decimal] = None

    def is_set(self) -> bool:
        return self.students is not None


class Macros(BaseModel):
    """Nutritional values per 100g; nutrients are keyed by lower-cased name"""
    model_config = ConfigDict(frozen=True)

    calories: MacroTuple
    nutrients: Mapping[str, MacroTuple] = Field(default_factory=dict, validate_default=True)

    @field_validator("nutrients", mode="after")
    @classmethod
    def _read_only(cls, nutrients: Mapping[str, MacroTuple]) -> Mapping[str, MacroTuple]:
        return MappingProxyType(dict(nutrients))


class Meal(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    allergens: FrozenSet[str] = frozenset()
    macros: Optional[Macros] = None
    price_group: str
    prices: Prices = Field(default_factory=Prices)


class Restaurant(BaseModel):
    name: str
    meals: List[Meal] = Field(default_factory=list)
    opening_hours: Optional[str] = None

    def contains_meal(self, name: str) -> bool:
        return any(meal.name == name for meal in self.meals)

    def add_meal(self, meal: Meal) -> bool:
        """Add a meal unless one with the same name is already on the menu"""
        if self.contains_meal(meal.name):
            return False
        self.meals.append(meal)
        return True


class RestaurantCollection:
    """Insertion-ordered restaurants for one scrape run, unique by name.

    The first restaurant added under a given name wins; later ones are dropped.
    """

    def __init__(self):
        self._restaurants: Dict[str, Restaurant] = {}

    def add(self, restaurant: Restaurant) -> bool:
        if restaurant.name in self._restaurants:
            return False
        self._restaurants[restaurant.name] = restaurant
        return True

    @property
    def restaurants(self) -> List[Restaurant]:
        return list(self._restaurants.values())

    def __iter__(self) -> Iterator[Restaurant]:
        return iter(self._restaurants.values())

    def __len__(self) -> int:
        return len(self._restaurants)

    def __contains__(self, name: str) -> bool:
        return name in self._restaurants
