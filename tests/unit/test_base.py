"""CareSphereComponent base class tests"""

import logging

import pytest

from caresphere.core.base import CareSphereComponent, ComponentState


class ConcreteComponent(CareSphereComponent):
    """Minimal component (no Test prefix so pytest does not collect it)"""

    def __init__(self, fail_init: bool = False):
        super().__init__()
        self.fail_init = fail_init

    async def initialize(self) -> None:
        self._set_state(ComponentState.INITIALIZING)
        if self.fail_init:
            self._error = RuntimeError("init failed")
            self._set_state(ComponentState.ERROR)
            raise self._error
        self._set_state(ComponentState.READY)

    async def cleanup(self) -> None:
        self._set_state(ComponentState.TERMINATING)
        self._set_state(ComponentState.TERMINATED)


@pytest.mark.unit
class TestComponentState:
    """ComponentState enum"""

    def test_operational_states(self):
        assert ComponentState.is_operational(ComponentState.READY)
        assert ComponentState.is_operational(ComponentState.RUNNING)
        assert not ComponentState.is_operational(ComponentState.INITIALIZING)
        assert not ComponentState.is_operational(ComponentState.TERMINATED)

    @pytest.mark.parametrize(
        "source, target",
        [
            (ComponentState.NOT_INITIALIZED, ComponentState.INITIALIZING),
            (ComponentState.INITIALIZING, ComponentState.READY),
            (ComponentState.READY, ComponentState.TERMINATING),
            (ComponentState.ERROR, ComponentState.INITIALIZING),
            (ComponentState.TERMINATING, ComponentState.TERMINATED),
        ],
    )
    def test_valid_transitions(self, source, target):
        assert source.can_transition_to(target)

    @pytest.mark.parametrize(
        "source, target",
        [
            (ComponentState.NOT_INITIALIZED, ComponentState.TERMINATED),
            (ComponentState.TERMINATED, ComponentState.RUNNING),
            (ComponentState.READY, ComponentState.INITIALIZING),
        ],
    )
    def test_invalid_transitions(self, source, target):
        assert not source.can_transition_to(target)


@pytest.mark.unit
class TestCareSphereComponent:
    """Lifecycle helpers"""

    def test_initial_state(self):
        component = ConcreteComponent()

        assert component.state == ComponentState.NOT_INITIALIZED
        assert component.is_available() is False
        assert str(component) == "ConcreteComponent(not_initialized)"

    def test_cannot_instantiate_abstract_base(self):
        with pytest.raises(TypeError):
            CareSphereComponent()

    @pytest.mark.asyncio
    async def test_lifecycle(self):
        component = ConcreteComponent()

        await component.initialize()
        assert component.is_available() is True
        assert component.get_status()["initialized_at"] is not None

        await component.cleanup()
        assert component.state == ComponentState.TERMINATED
        assert component.is_available() is False

    @pytest.mark.asyncio
    async def test_failed_initialize_reports_error(self):
        component = ConcreteComponent(fail_init=True)

        with pytest.raises(RuntimeError):
            await component.initialize()

        status = component.get_status()
        assert status["state"] == "error"
        assert status["error"] == "init failed"
        assert status["is_available"] is False

    def test_unexpected_transition_is_logged(self, caplog):
        component = ConcreteComponent()

        with caplog.at_level(logging.WARNING):
            component._set_state(ComponentState.TERMINATED)

        assert component.state == ComponentState.TERMINATED
        assert "Unexpected state transition" in caplog.text

    def test_get_status_keys(self):
        status = ConcreteComponent().get_status()

        assert set(status) == {"component", "state", "is_available", "initialized_at", "error"}
        assert status["component"] == "ConcreteComponent"
