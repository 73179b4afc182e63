import pytest

from evidencekeeper.progress import CAPSULE_COUNT, STEP_DEGREES, ProgressIndicator


def test_start_and_stop():
    spinner = ProgressIndicator()
    spinner.start_animation()
    assert spinner.is_animated() is True
    spinner.stop_animation()
    assert spinner.is_animated() is False


def test_tick_advances_by_step():
    spinner = ProgressIndicator()
    spinner.start_animation()
    assert spinner.tick() == STEP_DEGREES
    assert spinner.tick() == 2 * STEP_DEGREES


def test_full_turn_returns_to_zero():
    spinner = ProgressIndicator()
    spinner.start_animation()
    for _ in range(360 // STEP_DEGREES):
        spinner.tick()
    assert spinner.angle == 0


def test_tick_when_stopped_keeps_angle():
    spinner = ProgressIndicator()
    spinner.start_animation()
    spinner.tick()
    spinner.stop_animation()
    before = spinner.angle
    assert spinner.tick() == before


def test_start_resets_angle():
    spinner = ProgressIndicator()
    spinner.start_animation()
    spinner.tick()
    spinner.start_animation()
    assert spinner.angle == 0


def test_set_animation_delay():
    spinner = ProgressIndicator()
    spinner.set_animation_delay(100)
    assert spinner.delay == 100


def test_no_capsules_when_stopped_and_hidden():
    assert ProgressIndicator().capsules(20) == []


def test_capsules_when_displayed_while_stopped():
    spinner = ProgressIndicator()
    spinner.displayed_when_stopped = True
    assert len(spinner.capsules(20)) == CAPSULE_COUNT


@pytest.mark.parametrize("width", [20, 64])
def test_capsule_invariants(width):
    spinner = ProgressIndicator()
    spinner.start_animation()
    spinner.tick()
    capsules = spinner.capsules(width)
    assert len(capsules) == CAPSULE_COUNT
    assert capsules[0].alpha == 1.0
    assert capsules[0].rotation == spinner.angle
    for first, second in zip(capsules, capsules[1:]):
        assert second.alpha < first.alpha
        assert first.rotation - second.rotation == STEP_DEGREES
    for capsule in capsules:
        assert capsule.x == -capsule.width * 0.5
        assert capsule.radius == capsule.width // 2
        assert capsule.height > 0
        assert capsule.y < 0


def test_capsules_stay_within_radius():
    spinner = ProgressIndicator()
    spinner.start_animation()
    width = 64
    capsule = spinner.capsules(width)[0]
    assert -capsule.y <= (width - 1) * 0.5
    assert capsule.width < capsule.height