from shop_accountant.events import SEARCH_RESULT_SELECTED, SignalBus
from shop_accountant.session import UNLOCK_KEY, PinGate


def test_publish_reaches_every_subscriber():
    bus = SignalBus()
    seen = []
    bus.subscribe("configUpdated", lambda payload: seen.append(("a", payload)))
    bus.subscribe("configUpdated", lambda payload: seen.append(("b", payload)))
    assert bus.publish("configUpdated", {"app_name": "X"}) == 2
    assert sorted(name for name, _ in seen) == ["a", "b"]


def test_failing_subscriber_does_not_block_others():
    bus = SignalBus()
    seen = []

    def broken(_payload):
        raise RuntimeError("boom")

    bus.subscribe(SEARCH_RESULT_SELECTED, broken)
    bus.subscribe(SEARCH_RESULT_SELECTED, seen.append)
    assert bus.publish(SEARCH_RESULT_SELECTED, "x") == 1
    assert seen == ["x"]


def test_unsubscribe_is_idempotent():
    bus = SignalBus()
    unsubscribe = bus.subscribe("currencyUpdated", lambda _p: None)
    assert bus.subscriber_count("currencyUpdated") == 1
    unsubscribe()
    unsubscribe()
    assert bus.subscriber_count("currencyUpdated") == 0
    assert bus.publish("currencyUpdated") == 0


class FakeConfigurationAPI:
    def __init__(self, has_pin, pin="1234"):
        self.has_pin = has_pin
        self.pin = pin
        self.status_calls = 0

    def get_goal_pin_status(self):
        self.status_calls += 1
        return {"success": True, "hasPin": self.has_pin}

    def verify_goal_pin(self, pin):
        return {"success": True, "valid": pin == self.pin}


def test_gate_open_without_pin():
    store = {}
    gate = PinGate(FakeConfigurationAPI(has_pin=False), store)
    assert gate.check()
    assert store[UNLOCK_KEY] is True


def test_gate_asks_once_per_session():
    store = {}
    config = FakeConfigurationAPI(has_pin=True)
    gate = PinGate(config, store)
    assert not gate.check()
    assert not gate.verify("0000")
    assert gate.verify("1234")
    assert gate.check()
    assert config.status_calls == 1

    gate.lock()
    assert not gate.is_unlocked()
    assert not gate.check()


class FlakyConfigurationAPI(FakeConfigurationAPI):
    def __init__(self):
        super().__init__(has_pin=True)

    def get_goal_pin_status(self):
        self.status_calls += 1
        if self.status_calls == 1:
            return {"success": False, "message": "Network error"}
        return super().get_goal_pin_status()


def test_unavailable_pin_status_does_not_unlock_the_session():
    store = {}
    gate = PinGate(FlakyConfigurationAPI(), store)
    assert gate.check()
    assert UNLOCK_KEY not in store
    assert not gate.check()


def test_leaving_the_view_locks_it_again():
    store = {}
    gate = PinGate(FakeConfigurationAPI(has_pin=True), store)
    assert gate.verify("1234")
    gate.sync(visible=True)
    assert gate.is_unlocked()
    gate.sync(visible=False)
    assert not gate.is_unlocked()
    assert not gate.check()
