import builtins
from functools import lru_cache
from typing import List, Optional, Tuple, Type

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DETAIL_MESSAGE = "An unknown error occurred."


class Settings(BaseSettings):
    """Problem details configuration settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application
    DEBUG: bool = False

    # Serialization - None means JsonFlags.DEFAULT
    PROBLEM_DETAILS_JSON_FLAGS: Optional[int] = None

    # Expose exception message and code outside debug mode (None follows DEBUG)
    PROBLEM_DETAILS_EXCEPTION_DETAILS: Optional[bool] = None
    PROBLEM_DETAILS_DEFAULT_DETAIL: str = DEFAULT_DETAIL_MESSAGE

    # Warning categories promoted to failures while the middleware is active
    PROBLEM_DETAILS_TRAPPED_CATEGORIES: List[str] = ["Warning"]

    @field_validator("PROBLEM_DETAILS_TRAPPED_CATEGORIES")
    @classmethod
    def _known_warning_categories(cls, value: List[str]) -> List[str]:
        for name in value:
            category = getattr(builtins, name, None)
            if not (isinstance(category, type) and issubclass(category, Warning)):
                raise ValueError(f"{name!r} is not a builtin warning category")
        return value

    @property
    def exception_details_in_response(self) -> bool:
        if self.PROBLEM_DETAILS_EXCEPTION_DETAILS is None:
            return self.DEBUG
        return self.PROBLEM_DETAILS_EXCEPTION_DETAILS

    @property
    def trapped_categories(self) -> Tuple[Type[Warning], ...]:
        return tuple(getattr(builtins, name) for name in self.PROBLEM_DETAILS_TRAPPED_CATEGORIES)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
