"""Credential lookup for the external completion service.

Keys are managed outside this library. A key is only usable when it is
present, switched on (``is_active``) and has passed a verification call
(``is_verified``); anything else is a configuration error, never retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from biosig.core.config.settings import Settings
from biosig.core.llm.errors import CompletionConfigError


@dataclass(frozen=True)
class Credential:
    """An API key plus the metadata maintained by the credential manager."""

    api_key: str
    is_active: bool = True
    is_verified: bool = True
    label: str = ""


@runtime_checkable
class CredentialManager(Protocol):
    """Anything that can hand out a credential for a provider name."""

    def get_credential(self, provider: str) -> Credential | None: ...


class StaticCredentialManager:
    """In-memory credential manager (tests and embedding applications)."""

    def __init__(self, credentials: dict[str, Credential] | None = None) -> None:
        self._credentials = dict(credentials or {})

    def set_credential(self, provider: str, credential: Credential) -> None:
        self._credentials[provider] = credential

    def get_credential(self, provider: str) -> Credential | None:
        return self._credentials.get(provider)


class SettingsCredentialManager:
    """Reads keys from Settings; environment-provided keys count as verified."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def get_credential(self, provider: str) -> Credential | None:
        key = {
            "gemini": self.settings.gemini_api_key,
            "anthropic": self.settings.anthropic_api_key,
            "openai": self.settings.openai_api_key,
        }.get(provider, "")
        if not key:
            return None
        return Credential(api_key=key, label=f"{provider.upper()}_API_KEY")


def resolve_api_key(manager: CredentialManager, provider: str) -> str:
    """Return a usable API key or raise CompletionConfigError with a hint."""
    if provider == "mock":
        return ""

    credential = manager.get_credential(provider)
    env_name = f"{provider.upper()}_API_KEY"
    if credential is None or not credential.api_key:
        raise CompletionConfigError(
            f"No API key registered for provider '{provider}'",
            hint=f"register a key with the credential manager or set {env_name}",
        )
    if not credential.is_active:
        raise CompletionConfigError(
            f"API key for provider '{provider}' is inactive",
            hint="activate the key in the credential manager",
        )
    if not credential.is_verified:
        raise CompletionConfigError(
            f"API key for provider '{provider}' has not been verified",
            hint="run a verification request for the key before generating reports",
        )
    return credential.api_key
