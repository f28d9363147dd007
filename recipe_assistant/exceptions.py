"""
Assistant Errors

Every condition the cooking core can report. None of these are fatal:
the assistant engine turns them into a spoken reply, and the HTTP layer
maps whatever reaches it onto a status code.

    AssistantError
    ├── NotFoundError          recipe, timer or lookup miss
    │   ├── RecipeNotFoundError
    │   └── TimerNotFoundError
    ├── StepOutOfRangeError    navigation past either end of the recipe
    ├── NoActiveSessionError   mutation attempted while idle
    ├── InvalidScaleError      non-positive scale factor
    └── PersistenceError       workstate could not be saved/loaded
"""


class AssistantError(Exception):
    """Base class for all cooking assistant errors."""


class NotFoundError(AssistantError):
    """A requested item does not exist."""


class RecipeNotFoundError(NotFoundError):
    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe {recipe_id} not found")


class TimerNotFoundError(NotFoundError):
    def __init__(self, timer_ref: str):
        self.timer_ref = timer_ref
        super().__init__(f"Timer '{timer_ref}' not found")


class StepOutOfRangeError(AssistantError):
    """
    Raised when navigation would leave the recipe.

    `at_end` is True when the move went past the last step, which the
    engine reports as recipe completion rather than a failure.
    """

    def __init__(self, requested: int, step_count: int):
        self.requested = requested
        self.step_count = step_count
        self.at_end = requested >= step_count
        super().__init__(f"Step index {requested} outside 0..{step_count - 1}")


class NoActiveSessionError(AssistantError):
    def __init__(self, operation: str = ""):
        self.operation = operation
        detail = f" ({operation})" if operation else ""
        super().__init__(f"No active cooking session{detail}")


class InvalidScaleError(AssistantError):
    def __init__(self, factor: float):
        self.factor = factor
        super().__init__(f"Scale factor must be positive, got {factor}")


class PersistenceError(AssistantError):
    """The workstate store failed; the in-memory session keeps going."""
