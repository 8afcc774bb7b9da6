"""Pydantic-based configuration schemas and helpers."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Literal

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

_INTERPOLATORS = {"linear", "time_square", "natural_cubic"}
_EXTRAPOLATIONS = {"flat", "linear", "error"}


class DupireSettings(BaseModel):
    """Settings of the Dupire local volatility transform."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    derivative_method: Literal["finite_difference", "autodiff"] = Field(
        default="finite_difference",
        description="How implied-volatility derivatives are obtained",
    )
    relative_bump: float = Field(default=1e-4, gt=0.0, lt=1.0, description="Relative finite-difference bump")
    variance_floor: float = Field(default=1e-8, gt=0.0, description="Floor applied to negative local variance")
    min_denominator: float = Field(default=1e-10, ge=0.0, description="Smallest admissible Dupire denominator")
    small_strike: float = Field(default=1e-10, gt=0.0, description="Strike below which the zero-strike limit is used")


class ImpliedTreeSettings(BaseModel):
    """Settings of the implied trinomial tree calibration.

    The recovery error grows with the time step ``max_time / steps``. A flat
    surface comes back within 5e-5 with 10 steps over one year (dt = 0.1);
    the defaults, 20 steps over three years (dt = 0.15), recover it to
    about 6e-4. Raise ``steps`` for tighter recovery over long horizons.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    steps: int = Field(default=20, gt=0, description="Number of time steps of the lattice")
    max_time: float = Field(default=3.0, gt=0.0, description="Time to the last lattice slice, in years")
    spacing: float = Field(default=1.0, ge=1.0, description="Multiplier of the log-spacing sigma*sqrt(2 dt)")
    mass_tolerance: float = Field(default=1e-10, gt=0.0, description="Relative tolerance of the state-price mass check")
    time_interpolator: str = Field(default="time_square", description="Interpolator along time")
    strike_interpolator: str = Field(default="linear", description="Interpolator along strike")
    time_extrapolation: str = Field(default="flat")
    strike_extrapolation: str = Field(default="flat")

    @field_validator("time_interpolator", "strike_interpolator")
    @classmethod
    def validate_interpolator(cls, value: str) -> str:
        canonical = value.lower()
        if canonical not in _INTERPOLATORS:
            raise ValueError(f"interpolator must be one of {sorted(_INTERPOLATORS)}")
        return canonical

    @field_validator("time_extrapolation", "strike_extrapolation")
    @classmethod
    def validate_extrapolation(cls, value: str) -> str:
        canonical = value.lower()
        if canonical not in _EXTRAPOLATIONS:
            raise ValueError(f"extrapolation must be one of {sorted(_EXTRAPOLATIONS)}")
        return canonical

    @model_validator(mode="after")
    def validate_time_interpolation(self) -> "ImpliedTreeSettings":
        if self.time_interpolator == "natural_cubic" and self.steps < 3:
            raise ValueError("natural cubic interpolation in time requires at least 3 steps")
        return self

    def grid_interpolator(self):
        """Build the :class:`~localvol.market.surfaces.GridInterpolator2D` described by these settings."""
        from localvol.market.base import ExtrapolationPolicy
        from localvol.market.interpolation import CombinedInterpolator, Interpolator1D
        from localvol.market.surfaces import GridInterpolator2D

        def combined(kind: str, extrapolation: str) -> CombinedInterpolator:
            policy = ExtrapolationPolicy(extrapolation)
            return CombinedInterpolator(Interpolator1D(kind), policy, policy)

        return GridInterpolator2D(
            x_interpolator=combined(self.time_interpolator, self.time_extrapolation),
            y_interpolator=combined(self.strike_interpolator, self.strike_extrapolation),
        )


class CalibrationConfig(BaseModel):
    """Top-level configuration container for local volatility calibrations."""

    model_config = ConfigDict(extra="forbid")

    dupire: DupireSettings = Field(default_factory=DupireSettings)
    implied_tree: ImpliedTreeSettings = Field(default_factory=ImpliedTreeSettings)


class ConfigValidationError(RuntimeError):
    """Raised when one or more configuration files fail validation."""

    def __init__(self, errors: list[tuple[Path, ValidationError]]):
        message_lines = ["Configuration validation failed:"]
        for path, error in errors:
            message_lines.append(f"- {path}: {error}")
        super().__init__("\n".join(message_lines))
        self.errors = errors


def _load_yaml(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration at {path} must contain a mapping")
    return data


def load_config(path: Path | str) -> CalibrationConfig:
    """Load a configuration file into a :class:`CalibrationConfig`."""
    target = Path(path)
    payload = _load_yaml(target)
    return CalibrationConfig.model_validate(payload)


def discover_config_files(paths: Iterable[Path | str]) -> list[Path]:
    """Discover YAML configuration files from provided paths."""
    discovered: list[Path] = []
    seen = set()
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_file() and path.suffix in {".yml", ".yaml"}:
            resolved = path.resolve()
            if resolved not in seen:
                discovered.append(resolved)
                seen.add(resolved)
        elif path.is_dir():
            for pattern in ("*.yml", "*.yaml"):
                for candidate in sorted(path.rglob(pattern)):
                    resolved = candidate.resolve()
                    if resolved not in seen:
                        discovered.append(resolved)
                        seen.add(resolved)
    return discovered


def collect_and_validate(paths: Iterable[Path | str]) -> list[CalibrationConfig]:
    """Validate all configuration files under the given paths."""
    files = discover_config_files(paths)
    errors: list[tuple[Path, ValidationError]] = []
    configs: list[CalibrationConfig] = []
    for file in files:
        try:
            configs.append(load_config(file))
        except ValidationError as error:
            errors.append((file, error))
    if errors:
        raise ConfigValidationError(errors)
    return configs


__all__ = [
    "CalibrationConfig",
    "ConfigValidationError",
    "DupireSettings",
    "ImpliedTreeSettings",
    "collect_and_validate",
    "discover_config_files",
    "load_config",
]
