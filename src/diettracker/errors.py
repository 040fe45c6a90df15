"""Exceptions raised at the command-line surface."""


class DietTrackerError(Exception):
    """Base class for user-facing errors."""


class UnknownFoodItemError(DietTrackerError):
    def __init__(self, food_id: str):
        super().__init__(f"No food item with id '{food_id}'")
        self.food_id = food_id


class InvalidDateError(DietTrackerError):
    def __init__(self, value: str):
        super().__init__(f"Invalid date '{value}' (expected YYYY-MM-DD or 'today')")
        self.value = value
