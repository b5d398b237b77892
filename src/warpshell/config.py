"""Environment-backed pipeline configuration."""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path

DEFAULT_DANGEROUS_COMMANDS = (
    "rm -rf /",
    "del /s /q c:",
    "format c:",
    "shutdown",
    "reboot",
    "dd if=",
    "mkfs.",
    "> /dev/",
    "chmod 777 /",
    "chown root /",
)


def _to_bool(value: str | None, default: bool = False) -> bool:
    """Convert common env var truthy/falsy values into booleans."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


@dataclass(slots=True, frozen=True)
class ModelSpec:
    """Model names and backend shared read-only by one generation stage."""

    primary_name: str
    fallback_name: str
    backend_host: str
    timeout: float


@dataclass(slots=True)
class ModelConfig:
    planner: str = "phi4"
    coder: str = "codellama"
    fallback: str = "gemma3"
    ollama_host: str = "http://localhost:11434"
    timeout_seconds: int = 30

    def planner_spec(self) -> ModelSpec:
        return ModelSpec(
            primary_name=self.planner,
            fallback_name=self.fallback,
            backend_host=self.ollama_host,
            timeout=float(self.timeout_seconds),
        )

    def coder_spec(self) -> ModelSpec:
        return ModelSpec(
            primary_name=self.coder,
            fallback_name=self.fallback,
            backend_host=self.ollama_host,
            timeout=float(self.timeout_seconds),
        )


@dataclass(slots=True)
class ExecutionConfig:
    streaming: bool = True
    auto_confirm: bool = False
    max_execution_time: int = 300
    working_directory: str | None = None


@dataclass(slots=True, frozen=True)
class SafetyConfig:
    """Safety gate settings.

    Dangerous patterns are literal, case-insensitive substrings. An empty
    ``allowed_directories`` sequence places no restriction on directories.
    """

    enabled: bool = True
    dangerous_patterns: frozenset[str] = frozenset(DEFAULT_DANGEROUS_COMMANDS)
    require_confirmation: bool = True
    allowed_directories: tuple[str, ...] = ()


@dataclass(slots=True)
class AppConfig:
    """Runtime settings loaded from config files and environment variables."""

    models: ModelConfig = field(default_factory=ModelConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    safety: SafetyConfig = field(default_factory=SafetyConfig)
    shell: str = field(default_factory=lambda: _default_shell_for_platform())

    @classmethod
    def from_env(cls) -> AppConfig:
        file_config = _unwrap_warp_table(_load_preferred_file_config())
        models_config = _section(file_config, "models")
        execution_config = _section(file_config, "execution")
        safety_config = _section(file_config, "safety")
        defaults = ModelConfig()
        execution_defaults = ExecutionConfig()

        models = ModelConfig(
            planner=(
                os.getenv("WARPSHELL_PLANNER_MODEL")
                or _to_optional_string(models_config.get("planner"))
                or defaults.planner
            ),
            coder=(
                os.getenv("WARPSHELL_CODER_MODEL")
                or _to_optional_string(models_config.get("coder"))
                or defaults.coder
            ),
            fallback=(
                os.getenv("WARPSHELL_FALLBACK_MODEL")
                or _to_optional_string(models_config.get("fallback"))
                or defaults.fallback
            ),
            ollama_host=(
                os.getenv("WARPSHELL_OLLAMA_HOST")
                or _to_optional_string(models_config.get("ollama_host"))
                or defaults.ollama_host
            ).rstrip("/"),
            timeout_seconds=_to_positive_int(
                os.getenv("WARPSHELL_TIMEOUT_SECONDS") or models_config.get("timeout_seconds"),
                default=defaults.timeout_seconds,
            ),
        )
        execution = ExecutionConfig(
            streaming=_to_bool(
                os.getenv("WARPSHELL_STREAMING"),
                default=_file_bool(execution_config.get("streaming"), execution_defaults.streaming),
            ),
            auto_confirm=_to_bool(
                os.getenv("WARPSHELL_AUTO_CONFIRM"),
                default=_file_bool(
                    execution_config.get("auto_confirm"), execution_defaults.auto_confirm
                ),
            ),
            max_execution_time=_to_positive_int(
                os.getenv("WARPSHELL_MAX_EXECUTION_TIME")
                or execution_config.get("max_execution_time"),
                default=execution_defaults.max_execution_time,
            ),
            working_directory=(
                os.getenv("WARPSHELL_CWD")
                or _to_optional_string(execution_config.get("working_directory"))
            ),
        )
        safety = SafetyConfig(
            enabled=_to_bool(
                os.getenv("WARPSHELL_SAFETY_ENABLED"),
                default=_file_bool(safety_config.get("enable_safety_checks"), True),
            ),
            dangerous_patterns=frozenset(
                _to_string_list(
                    safety_config.get("dangerous_commands"),
                    default=DEFAULT_DANGEROUS_COMMANDS,
                )
            ),
            require_confirmation=_to_bool(
                os.getenv("WARPSHELL_REQUIRE_CONFIRMATION"),
                default=_file_bool(safety_config.get("require_confirmation"), True),
            ),
            allowed_directories=tuple(
                _to_string_list(safety_config.get("allowed_directories"), default=())
            ),
        )

        return cls(
            models=models,
            execution=execution,
            safety=safety,
            shell=_resolve_shell(
                os.getenv("WARPSHELL_SHELL") or _to_optional_string(file_config.get("shell"))
            ),
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize to the file layout accepted by ``from_env``."""
        return {
            "models": asdict(self.models),
            "execution": asdict(self.execution),
            "safety": {
                "enable_safety_checks": self.safety.enabled,
                "require_confirmation": self.safety.require_confirmation,
                "dangerous_commands": sorted(self.safety.dangerous_patterns),
                "allowed_directories": list(self.safety.allowed_directories),
            },
            "shell": self.shell,
        }


def write_sample_config(path: str | Path) -> Path:
    """Write the default configuration as JSON; never overwrites an existing file."""
    target = Path(path)
    if target.exists():
        msg = f"Refusing to overwrite existing config file: {target}"
        raise FileExistsError(msg)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(AppConfig().to_dict(), indent=2) + "\n", encoding="utf-8")
    return target


def _to_optional_string(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _file_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _to_bool(value, default=default)
    return default


def _to_string_list(value: object, *, default: tuple[str, ...]) -> list[str]:
    if not isinstance(value, list):
        return list(default)
    return [item for item in value if isinstance(item, str) and item.strip()]


def _section(config: dict[str, object], name: str) -> dict[str, object]:
    value = config.get(name)
    return value if isinstance(value, dict) else {}


def _unwrap_warp_table(config: dict[str, object]) -> dict[str, object]:
    warp = config.get("warp")
    if isinstance(warp, dict):
        return _merge_dicts({k: v for k, v in config.items() if k != "warp"}, warp)
    return config


def _load_file_config(path_value: str) -> dict[str, object]:
    path = Path(path_value)
    if not path.exists() or not path.is_file():
        return {}
    try:
        if path.suffix == ".toml":
            with path.open("rb") as fh:
                parsed: object = tomllib.load(fh)
        else:
            with path.open("r", encoding="utf-8") as fh:
                parsed = json.load(fh)
    except (OSError, json.JSONDecodeError, tomllib.TOMLDecodeError):
        return {}
    if isinstance(parsed, dict):
        return parsed
    return {}


def _load_preferred_file_config() -> dict[str, object]:
    explicit_path = os.getenv("WARPSHELL_CONFIG_FILE")
    if explicit_path:
        return _load_file_config(explicit_path)

    shared_config = _load_file_config("warpshell.config.json")
    local_override = _load_file_config("warpshell.config.local.json")
    return _merge_dicts(shared_config, local_override)


def _merge_dicts(base: dict[str, object], override: dict[str, object]) -> dict[str, object]:
    merged: dict[str, object] = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _merge_dicts(base_value, value)
        else:
            merged[key] = value
    return merged


def _shell_value(value: str) -> str:
    normalized = value.strip().lower()
    aliases = {
        "powershell": "powershell",
        "pwsh": "powershell",
        "bash": "bash",
        "sh": "sh",
        "shell": "bash",
    }
    return aliases.get(normalized, _default_shell_for_platform())


def _default_shell_for_platform(os_name: str | None = None) -> str:
    platform_name = os.name if os_name is None else os_name
    return "powershell" if platform_name == "nt" else "bash"


def _resolve_shell(value: str | None) -> str:
    if value is None:
        return _default_shell_for_platform()
    return _shell_value(value)


def _to_positive_int(value: object, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default
