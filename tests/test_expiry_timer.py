from __future__ import annotations

import threading

from pokevgc.client.timer import ExpiryTimer


class _Timer:
    def __init__(self, delay: float, callback) -> None:
        self.delay = delay
        self.callback = callback
        self.daemon = False
        self.cancelled = False

    def start(self) -> None:
        pass

    def cancel(self) -> None:
        self.cancelled = True


def _factory(created: list[_Timer]):
    def build(delay: float, callback) -> _Timer:
        timer = _Timer(delay, callback)
        created.append(timer)
        return timer

    return build


def test_arm_in_the_past_fires_immediately() -> None:
    created: list[_Timer] = []
    timer = ExpiryTimer(lambda: None, clock=lambda: 500.0, timer_factory=_factory(created))

    assert timer.arm(100) == 0.0
    assert timer.armed


def test_cancel_neutralizes_pending_callback() -> None:
    created: list[_Timer] = []
    fired: list[str] = []
    timer = ExpiryTimer(lambda: fired.append("x"), clock=lambda: 0.0, timer_factory=_factory(created))
    timer.arm(10)

    timer.cancel()
    created[0].callback()

    assert created[0].cancelled
    assert not timer.armed
    assert fired == []


def test_only_latest_arm_fires() -> None:
    created: list[_Timer] = []
    fired: list[str] = []
    timer = ExpiryTimer(lambda: fired.append("x"), clock=lambda: 0.0, timer_factory=_factory(created))
    timer.arm(10)
    timer.arm(20)

    created[0].callback()
    created[1].callback()
    created[1].callback()

    assert fired == ["x"]
    assert not timer.armed


def test_real_timer_fires_on_expiry() -> None:
    fired = threading.Event()
    timer = ExpiryTimer(fired.set, clock=lambda: 1_000.0)

    timer.arm(1_000.01)

    assert fired.wait(timeout=2)
