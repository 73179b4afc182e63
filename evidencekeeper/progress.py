"""State and geometry of a spinning busy indicator."""

from __future__ import annotations

from dataclasses import dataclass

CAPSULE_COUNT = 12
STEP_DEGREES = 30
DEFAULT_DELAY_MS = 40
SIZE_HINT = (20, 20)


@dataclass(frozen=True)
class Capsule:
    """One spoke of the indicator, drawn rotated about the widget centre."""

    alpha: float
    rotation: float
    x: float
    y: float
    width: int
    height: int
    radius: int


class ProgressIndicator:
    """An indeterminate progress spinner that advances by one step per tick."""

    def __init__(self) -> None:
        self.angle = 0
        self.delay = DEFAULT_DELAY_MS
        self.displayed_when_stopped = False
        self.color: tuple[int, int, int] = (0, 0, 0)
        self._animated = False

    def is_animated(self) -> bool:
        """Return True while the spinner is running."""
        return self._animated

    def start_animation(self) -> None:
        """Start spinning from the initial angle."""
        self.angle = 0
        self._animated = True

    def stop_animation(self) -> None:
        """Stop spinning."""
        self._animated = False

    def set_animation_delay(self, delay: int) -> None:
        """Set the delay between steps, in milliseconds."""
        self.delay = delay

    def tick(self) -> int:
        """Advance one step if running, and return the current angle."""
        if self._animated:
            self.angle = (self.angle + STEP_DEGREES) % 360
        return self.angle

    def capsules(self, width: int) -> list[Capsule]:
        """Return the spokes to draw in a square of the given side.

        Nothing is drawn when stopped unless displayed_when_stopped is set.
        """
        if not self.displayed_when_stopped and not self._animated:
            return []

        outer_radius = int((width - 1) * 0.5)
        inner_radius = int((width - 1) * 0.5 * 0.38)
        capsule_height = outer_radius - inner_radius
        ratio = 0.23 if width > 32 else 0.35
        capsule_width = int(capsule_height * ratio)
        capsule_radius = capsule_width // 2

        return [
            Capsule(
                alpha=1.0 - index / CAPSULE_COUNT,
                rotation=self.angle - index * float(STEP_DEGREES),
                x=-capsule_width * 0.5,
                y=-(inner_radius + capsule_height),
                width=capsule_width,
                height=capsule_height,
                radius=capsule_radius,
            )
            for index in range(CAPSULE_COUNT)
        ]