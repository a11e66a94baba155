"""
Pydantic base class for crosstab configuration objects.

Configuration objects are immutable once created. They accept both the
snake_case attribute names and the camelCase keys used by front-end
pivot configurations (``showGrandTotals``, ``sortFieldId``, ...).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import ArgumentError, ConfigurationError


class ConfigObject(BaseModel):
    """
    Base class for all crosstab configuration objects.

    Instances are frozen: a build call receives its configuration by value
    and nothing downstream may change it.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
        use_enum_values=True,
        arbitrary_types_allowed=True,
    )

    @classmethod
    def from_config(cls, config: Any):
        """
        Create instance from configuration.

        Args:
            config: ``None`` (defaults), a dictionary or an instance of the
                class, which is returned as is.

        Returns:
            New instance of the class

        Raises:
            ArgumentError: If configuration type is invalid
            ConfigurationError: If validation fails
        """
        if config is None:
            config = {}

        if isinstance(config, cls):
            return config
        elif isinstance(config, dict):
            try:
                return cls.model_validate(config)
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid {cls.__name__} configuration: {e}", cause=e
                ) from e
        else:
            raise ArgumentError(f"Invalid configuration type: {type(config)}")

    def to_dict(self, by_alias: bool = False, **options: Any) -> dict[str, Any]:
        """Dictionary representation. Camel-case keys when `by_alias` is
        ``True``."""
        return self.model_dump(exclude_none=True, by_alias=by_alias, **options)
