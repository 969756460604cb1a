"""
Contains the settings of the validation framework. They can be set via environment variables.
"""
from functools import lru_cache

from pydantic_settings import BaseSettings


class ValidatorSettings(BaseSettings):
    """
    Settings used to build the default validation context, e.g. `DVFRAMEWORK_MODE=strict`.
    """

    model_config = {"env_prefix": "DVFRAMEWORK_"}

    mode: str = "normal"


@lru_cache
def get_settings() -> ValidatorSettings:
    """Returns the settings read from the environment. The result is cached"""
    return ValidatorSettings()
