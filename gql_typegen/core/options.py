"""Generation options."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .deprecation import DEFAULT_STRATEGY, DeprecationStrategy
from .scalars import ScalarMode, ScalarRegistry


class GenerationOptions(BaseModel):
    """Options recognized by the compiler.

    Example:
        GenerationOptions(
            deprecated="deny",
            operation_name="GetHero",
            scalar_mapping={"DateTime": "datetime.datetime"},
            response_extra_derives={"eq", "debug"},
        )
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    deprecated: DeprecationStrategy = DEFAULT_STRATEGY
    operation_name: Optional[str] = None
    # Custom scalar name -> external type reference ("module.Type")
    scalar_mapping: dict[str, str] = Field(default_factory=dict)
    scalar_mode: ScalarMode = ScalarMode.EXTERNAL
    # Extra capabilities the emitted types must support, passed through as-is
    response_extra_derives: frozenset[str] = frozenset()

    @field_validator("scalar_mapping")
    @classmethod
    def _check_references(cls, value: dict[str, str]) -> dict[str, str]:
        # Registering validates every reference
        ScalarRegistry(value)
        return value

    @field_validator("response_extra_derives", mode="before")
    @classmethod
    def _strip_derives(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(item.strip() for item in value if item.strip())

    def scalar_registry(self) -> ScalarRegistry:
        return ScalarRegistry(self.scalar_mapping, self.scalar_mode)
