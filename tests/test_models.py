from decimal import Decimal

import pytest
from pydantic import ValidationError

from lunch_scraper.models import MacroTuple, Macros, Meal, Prices, Restaurant, RestaurantCollection


def make_meal(name, price_group="Normal"):
    return Meal(name=name, price_group=price_group, prices=Prices(students=Decimal("3.10")))


def test_restaurant_keeps_first_meal_with_a_name():
    restaurant = Restaurant(name="Galilei")

    assert restaurant.add_meal(make_meal("Soup")) is True
    assert restaurant.add_meal(make_meal("Soup", "Deli")) is False
    assert restaurant.add_meal(make_meal("Soup [Station 2]")) is True

    assert [meal.name for meal in restaurant.meals] == ["Soup", "Soup [Station 2]"]
    assert restaurant.meals[0].price_group == "Normal"


def test_meals_are_immutable():
    meal = make_meal("Soup")
    with pytest.raises(ValidationError):
        meal.name = "Stew"


def test_meal_prices_and_macros_are_immutable():
    macros = Macros(
        calories=MacroTuple(Decimal("180"), "kcal"),
        nutrients={"protein": MacroTuple(Decimal("12"), "g")},
    )
    meal = Meal(name="Soup", price_group="Normal", macros=macros, prices=Prices(students=Decimal("3.10")))

    with pytest.raises(ValidationError):
        meal.prices.students = Decimal("0")
    with pytest.raises(ValidationError):
        meal.macros.calories = MacroTuple(Decimal("0"), "kcal")
    with pytest.raises(TypeError):
        meal.macros.nutrients["protein"] = MacroTuple(Decimal("0"), "g")

    assert meal.prices.students == Decimal("3.10")
    assert meal.macros.nutrients["protein"] == MacroTuple(Decimal("12"), "g")


def test_macros_without_nutrients_are_read_only():
    macros = Macros(calories=MacroTuple(Decimal("180"), "kcal"))
    with pytest.raises(TypeError):
        macros.nutrients["fat"] = MacroTuple(Decimal("5"), "g")


def test_prices_default_to_unset():
    prices = Prices()
    assert prices.students is None
    assert prices.others is None
    assert not prices.is_set()


def test_collection_keeps_first_restaurant_per_name():
    restaurants = RestaurantCollection()
    first = Restaurant(name="Galilei", opening_hours="Mon: 10.30-14.00")

    assert restaurants.add(first) is True
    assert restaurants.add(Restaurant(name="Delica")) is True
    assert restaurants.add(Restaurant(name="Galilei")) is False

    assert [restaurant.name for restaurant in restaurants] == ["Galilei", "Delica"]
    assert restaurants.restaurants[0] is first
    assert "Delica" in restaurants
    assert len(restaurants) == 2
