"""
Config Loader - Load chatfn settings from YAML and the environment
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..constants import (
    CONVERSATION_FUNCTION_TIMEOUT,
    DEFAULT_FUNCTION_TIMEOUT,
    DEFAULT_MAX_FUNCTION_ROUNDS,
    DEFAULT_MAX_HISTORY_LENGTH,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_MAX_JITTER,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_TEMPERATURE,
    MAX_MAX_TOKENS,
    MAX_TEMPERATURE,
    MESSAGE_OVERHEAD_TOKENS,
    MIN_MAX_TOKENS,
    MIN_TEMPERATURE,
)
from ..conversation import Conversation, ConversationConfig
from ..llm import LLMConfig, OpenAIClient, RetryPolicy
from ..protocols import CompletionClientProtocol
from ..tools import FunctionRegistry, register_builtin_functions

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "chatfn.yaml"
ENV_PREFIX = "CHATFN__"


class LLMSettings(BaseModel):
    """Completion client settings (``llm:`` section)"""
    provider: str = "openai"
    model: str = Field(default=DEFAULT_MODEL, min_length=1)
    api_key: Optional[str] = None
    api_key_env: str = "OPENAI_API_KEY"
    base_url: Optional[str] = None
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=MIN_TEMPERATURE, le=MAX_TEMPERATURE)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=MIN_MAX_TOKENS, le=MAX_MAX_TOKENS)
    timeout: float = Field(default=60.0, gt=0)

    # Retry policy
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    retry_base_delay: float = Field(default=DEFAULT_RETRY_BASE_DELAY, ge=0)
    retry_max_jitter: float = Field(default=DEFAULT_RETRY_MAX_JITTER, ge=0)

    extra: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    def resolve_api_key(self) -> Optional[str]:
        """Explicit key first, then the named environment variable"""
        return self.api_key or os.environ.get(self.api_key_env)

    def to_llm_config(self) -> LLMConfig:
        return LLMConfig(
            api_key=self.resolve_api_key(),
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            timeout=self.timeout,
            extra=dict(self.extra),
        )

    def to_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            max_jitter=self.retry_max_jitter,
        )


class ConversationSettings(BaseModel):
    """Conversation settings (``conversation:`` section)"""
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, min_length=1)
    max_history_length: int = Field(default=DEFAULT_MAX_HISTORY_LENGTH, ge=2)
    function_timeout: float = Field(default=CONVERSATION_FUNCTION_TIMEOUT, gt=0)
    max_function_rounds: int = Field(default=DEFAULT_MAX_FUNCTION_ROUNDS, ge=1)
    message_overhead_tokens: int = Field(default=MESSAGE_OVERHEAD_TOKENS, ge=0)

    model_config = ConfigDict(extra="ignore")

    def to_conversation_config(self) -> ConversationConfig:
        return ConversationConfig(
            system_prompt=self.system_prompt,
            max_history_length=self.max_history_length,
            function_timeout=self.function_timeout,
            max_function_rounds=self.max_function_rounds,
            message_overhead_tokens=self.message_overhead_tokens,
        )


class RegistrySettings(BaseModel):
    """Function registry settings (``registry:`` section)"""
    default_timeout: float = Field(default=DEFAULT_FUNCTION_TIMEOUT, gt=0)
    include_builtins: bool = False

    model_config = ConfigDict(extra="ignore")


class ChatfnSettings(BaseModel):
    llm: LLMSettings = Field(default_factory=LLMSettings)
    conversation: ConversationSettings = Field(default_factory=ConversationSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)

    model_config = ConfigDict(extra="ignore")


def _apply_env_overrides(data: Dict[str, Any], env: Mapping[str, str]) -> Dict[str, Any]:
    """Merge ``CHATFN__SECTION__KEY=value`` variables into *data*.

    Values are parsed as YAML scalars so numbers and booleans keep their type.
    """
    for key, raw in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = [part.lower() for part in key[len(ENV_PREFIX):].split("__") if part]
        if not path:
            continue

        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw

        node = data
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[path[-1]] = value
        logger.debug(f"Config override from environment: {key}")
    return data


class ConfigLoader:
    """
    Load settings from ``<config_dir>/chatfn.yaml``

    Example chatfn.yaml:
        llm:
          model: gpt-4o
          temperature: 0.3
          max_retries: 5

        conversation:
          system_prompt: You are a concise assistant.
          max_function_rounds: 3

        registry:
          default_timeout: 5
          include_builtins: true

    Environment variables override file values, e.g.
    ``CHATFN__LLM__MODEL=gpt-4o`` or ``CHATFN__CONVERSATION__MAX_HISTORY_LENGTH=40``.
    """

    def __init__(self, config_dir: Optional[str] = None, env: Optional[Mapping[str, str]] = None):
        """
        Args:
            config_dir: Path to config directory (default: ./config)
            env: Environment mapping (default: os.environ)
        """
        self.config_dir = Path(config_dir) if config_dir else Path("config")
        self.env = os.environ if env is None else env
        self._settings: Optional[ChatfnSettings] = None

    @property
    def settings(self) -> ChatfnSettings:
        if self._settings is None:
            return self.load()
        return self._settings

    def load(self) -> ChatfnSettings:
        """
        Read the YAML file, apply environment overrides and validate.

        Raises:
            ValueError: If the file is malformed or a value is out of range
        """
        path = self.config_dir / CONFIG_FILENAME
        data: Dict[str, Any] = {}
        if path.exists():
            logger.info(f"Loading config from {path}")
            with open(path, "r") as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ValueError(f"Config error: could not parse {path}: {e}") from e
            if not isinstance(data, dict):
                raise ValueError(f"Config error: {path} must contain a mapping")
        else:
            logger.debug(f"No {CONFIG_FILENAME} found at {path}, using defaults")

        data = _apply_env_overrides(data, self.env)

        try:
            self._settings = ChatfnSettings.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Config error: {e}") from e

        logger.info(
            f"Config loaded: model={self._settings.llm.model}, "
            f"max_function_rounds={self._settings.conversation.max_function_rounds}"
        )
        return self._settings


def build_conversation(
    settings: Optional[ChatfnSettings] = None,
    registry: Optional[FunctionRegistry] = None,
    client: Optional[CompletionClientProtocol] = None,
) -> Conversation:
    """
    Wire a Conversation from settings.

    Args:
        settings: Loaded settings (defaults when omitted)
        registry: Existing registry to use instead of a new one
        client: Existing completion client to use instead of an OpenAIClient
    """
    settings = settings or ChatfnSettings()

    if registry is None:
        registry = FunctionRegistry(default_timeout=settings.registry.default_timeout)
    if settings.registry.include_builtins:
        register_builtin_functions(registry)

    if client is None:
        if settings.llm.provider != "openai":
            raise ValueError(f"Unsupported LLM provider: {settings.llm.provider}")
        client = OpenAIClient(
            config=settings.llm.to_llm_config(),
            retry_policy=settings.llm.to_retry_policy(),
        )

    return Conversation(client, registry, settings.conversation.to_conversation_config())
