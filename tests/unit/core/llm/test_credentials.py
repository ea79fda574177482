"""Tests for credential lookup and resolution."""

from __future__ import annotations

import pytest

from biosig.core.config.settings import Settings
from biosig.core.llm.credentials import (
    Credential,
    CredentialManager,
    SettingsCredentialManager,
    StaticCredentialManager,
    resolve_api_key,
)
from biosig.core.llm.errors import CompletionConfigError


class TestStaticCredentialManager:
    def test_lookup(self):
        manager = StaticCredentialManager({"gemini": Credential(api_key="abc")})
        assert manager.get_credential("gemini").api_key == "abc"
        assert manager.get_credential("openai") is None

    def test_set_credential(self):
        manager = StaticCredentialManager()
        manager.set_credential("openai", Credential(api_key="sk-1"))
        assert manager.get_credential("openai").api_key == "sk-1"

    def test_satisfies_protocol(self):
        assert isinstance(StaticCredentialManager(), CredentialManager)


class TestSettingsCredentialManager:
    def test_reads_provider_key(self):
        manager = SettingsCredentialManager(Settings(anthropic_api_key="ant-key"))
        credential = manager.get_credential("anthropic")
        assert credential.api_key == "ant-key"
        assert credential.is_verified is True

    def test_empty_key_is_absent(self):
        assert SettingsCredentialManager(Settings()).get_credential("gemini") is None


class TestResolveApiKey:
    def test_active_verified_key(self):
        manager = StaticCredentialManager({"gemini": Credential(api_key="abc")})
        assert resolve_api_key(manager, "gemini") == "abc"

    def test_mock_needs_no_key(self):
        assert resolve_api_key(StaticCredentialManager(), "mock") == ""

    def test_missing_key(self):
        with pytest.raises(CompletionConfigError) as exc_info:
            resolve_api_key(StaticCredentialManager(), "gemini")
        assert exc_info.value.hint
        assert "GEMINI_API_KEY" in str(exc_info.value)

    def test_blank_key_is_missing(self):
        manager = StaticCredentialManager({"gemini": Credential(api_key="")})
        with pytest.raises(CompletionConfigError, match="No API key"):
            resolve_api_key(manager, "gemini")

    def test_inactive_key(self):
        manager = StaticCredentialManager({"gemini": Credential(api_key="abc", is_active=False)})
        with pytest.raises(CompletionConfigError, match="inactive"):
            resolve_api_key(manager, "gemini")

    def test_unverified_key(self):
        manager = StaticCredentialManager({"openai": Credential(api_key="abc", is_verified=False)})
        with pytest.raises(CompletionConfigError) as exc_info:
            resolve_api_key(manager, "openai")
        assert "verification" in exc_info.value.hint
