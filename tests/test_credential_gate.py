import asyncio

import pytest

from app.core.CredentialGate import SELECTION_FAILED_ALERT, CredentialGate
from app.core.credentials import CredentialProvider, EnvironmentCredentialProvider
from app.core.errors import CredentialMissingError, CredentialSelectionError
from app.schemas.KeySelection import GateState


class BrokenProvider(CredentialProvider):
    def __init__(self):
        self.checks = 0

    async def has_selected_key(self):
        self.checks += 1
        raise RuntimeError("capability unavailable")

    async def open_select_key(self, api_key=None):
        raise RuntimeError("dialog crashed")

    def current(self):
        raise CredentialMissingError("no key")


class TestEnvironmentCredentialProvider:
    def test_current_without_key(self):
        with pytest.raises(CredentialMissingError):
            EnvironmentCredentialProvider(None).current()

    def test_blank_selection_is_rejected(self):
        provider = EnvironmentCredentialProvider(None)
        with pytest.raises(CredentialSelectionError):
            asyncio.run(provider.open_select_key("   "))

    def test_verifier_runs_before_key_is_kept(self):
        seen = []

        async def verifier(credential):
            seen.append(credential.api_key)
            raise CredentialSelectionError()

        provider = EnvironmentCredentialProvider(None, verifier)
        with pytest.raises(CredentialSelectionError):
            asyncio.run(provider.open_select_key("bad-key"))
        assert seen == ["bad-key"]
        assert asyncio.run(provider.has_selected_key()) is False

    def test_selected_key_is_current(self):
        provider = EnvironmentCredentialProvider(None)
        asyncio.run(provider.open_select_key(" new-key "))
        assert provider.current().api_key == "new-key"
        assert "new-key" not in repr(provider.current())


class TestCredentialGate:
    def test_starts_loading(self):
        assert CredentialGate(EnvironmentCredentialProvider("k")).state == GateState.LOADING

    def test_check_unlocks_with_key(self):
        gate = CredentialGate(EnvironmentCredentialProvider("k"))
        assert asyncio.run(gate.check()).state == GateState.UNLOCKED

    def test_check_locks_without_key(self):
        gate = CredentialGate(EnvironmentCredentialProvider(None))
        assert asyncio.run(gate.check()).state == GateState.LOCKED

    def test_missing_capability_stays_locked(self):
        gate = CredentialGate(None)
        asyncio.run(gate.check())
        assert asyncio.run(gate.select("key")).state == GateState.LOCKED

    def test_capability_error_is_logged_and_locks(self):
        gate = CredentialGate(BrokenProvider())
        assert asyncio.run(gate.check()).state == GateState.LOCKED

    def test_select_unlocks(self):
        gate = CredentialGate(EnvironmentCredentialProvider(None))
        asyncio.run(gate.check())
        status = asyncio.run(gate.select("fresh-key"))
        assert status.state == GateState.UNLOCKED
        assert status.alert is None

    def test_entity_not_found_resets_and_alerts(self):
        async def verifier(credential):
            raise CredentialSelectionError()

        gate = CredentialGate(EnvironmentCredentialProvider(None, verifier))
        asyncio.run(gate.check())
        with pytest.raises(CredentialSelectionError):
            asyncio.run(gate.select("expired-key"))
        assert gate.state == GateState.LOCKED
        assert gate.alert == SELECTION_FAILED_ALERT

    def test_other_selection_errors_leave_state(self):
        gate = CredentialGate(BrokenProvider())
        asyncio.run(gate.check())
        assert asyncio.run(gate.select("key")).state == GateState.LOCKED
        assert gate.alert is None

    def test_select_once_unlocked_keeps_gate_open(self):
        async def verifier(credential):
            raise CredentialSelectionError()

        gate = CredentialGate(EnvironmentCredentialProvider("k", verifier))
        asyncio.run(gate.check())

        status = asyncio.run(gate.select("rejected-key"))

        assert status.state == GateState.UNLOCKED
        assert status.alert is None
        assert asyncio.run(gate.check()).alert is None

    def test_not_rechecked_once_unlocked(self):
        provider = EnvironmentCredentialProvider("k")
        gate = CredentialGate(provider)
        asyncio.run(gate.check())
        provider._api_key = None
        assert asyncio.run(gate.check()).state == GateState.UNLOCKED
