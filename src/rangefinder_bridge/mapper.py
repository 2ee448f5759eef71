"""Distance to intensity mapping with dead zone, inversion, and EMA smoothing."""

from __future__ import annotations

from .config import MappingConfig


class RangeMapper:
    """Maps raw distance readings to actuator intensity values in [0, 1]."""

    def __init__(self, config: MappingConfig) -> None:
        self.config = config

        # Smoothing state
        self._smoothed_intensity = 0.0
        self._initialized = False

    @property
    def smoothed_intensity(self) -> float:
        return self._smoothed_intensity

    @property
    def initialized(self) -> bool:
        return self._initialized

    def map(self, distance_mm: int) -> float:
        """
        Map a distance reading to an intensity between 0.0 and 1.0.

        With invert=True closer readings give higher intensity, with
        invert=False farther readings do. Readings beyond the dead zone map
        to zero. The result is passed through exponential smoothing.

        Args:
            distance_mm: Distance reported by the sensor in millimeters

        Returns:
            Smoothed intensity value
        """
        cfg = self.config

        # Dead zone is checked on the raw reading, before clamping
        if cfg.deadzone_mm > 0 and distance_mm > cfg.deadzone_mm:
            return self._apply_smoothing(0.0)

        clamped = min(max(distance_mm, cfg.min_range_mm), cfg.max_range_mm)

        range_span = cfg.max_range_mm - cfg.min_range_mm
        if range_span > 0:
            normalized = (clamped - cfg.min_range_mm) / range_span
        else:
            normalized = 0.0

        directed = 1.0 - normalized if cfg.invert else normalized

        intensity_span = cfg.max_intensity - cfg.min_intensity
        raw_intensity = cfg.min_intensity + directed * intensity_span
        raw_intensity = min(max(raw_intensity, 0.0), 1.0)

        return self._apply_smoothing(raw_intensity)

    def reset(self) -> None:
        """Forget smoothing history so the next sample is passed through unchanged."""
        self._smoothed_intensity = 0.0
        self._initialized = False

    def update_config(self, config: MappingConfig) -> None:
        self.config = config

    def _apply_smoothing(self, raw: float) -> float:
        if not self._initialized:
            self._smoothed_intensity = raw
            self._initialized = True
            return raw

        alpha = self.config.smoothing
        self._smoothed_intensity = alpha * self._smoothed_intensity + (1.0 - alpha) * raw
        return self._smoothed_intensity
