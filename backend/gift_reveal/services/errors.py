from typing import Any


class GiftError(Exception):
    pass


class GiftConflictError(GiftError):
    def __init__(self, number: int) -> None:
        super().__init__(f"Gift number {number} is already taken")
        self.number = number


class ContentWriteError(GiftError):
    def __init__(self, gift_id: str, message: str = "Failed to save gift content") -> None:
        super().__init__(message)
        self.gift_id = gift_id


class InvalidGiftInputError(GiftError):
    def __init__(self, errors: list[dict[str, Any]]) -> None:
        super().__init__("Invalid gift payload")
        self.errors = errors
