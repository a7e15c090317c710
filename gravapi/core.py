"""gravapi core - config store and JSON parameter flattening."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from gravapi.errors import (
    ConfigMissingError,
    ConfigParseError,
    ConfigWriteError,
    ConflictingParametersError,
    InvalidJSONError,
    NotAuthenticatedError,
    NotConfiguredError,
    ParameterFileError,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".gravity-api.yaml"
CONFIG_FILE = Path.home() / CONFIG_FILENAME


class Configuration:
    """Base URL and bearer token of the single configured endpoint."""

    def __init__(self, url: str = "", token: str = ""):
        self.url: str = url
        self.token: str = token

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "token": self.token}

    def __eq__(self, other):
        if not isinstance(other, Configuration):
            return NotImplemented
        return self.url == other.url and self.token == other.token

    def __repr__(self):
        masked = "***" if self.token else ""
        return f"Configuration(url={self.url!r}, token={masked!r})"


# ── Configuration store ──────────────────────────────────────────────────


def _config_path(path: str | Path | None) -> Path:
    return Path(path) if path is not None else CONFIG_FILE


def load_config(path: str | Path | None = None) -> Configuration | None:
    """Load the stored configuration.

    Returns None when the file does not exist, so callers can start from a
    fresh Configuration. A file that exists but cannot be read or parsed
    is an error.
    """
    path = _config_path(path)
    if not path.exists():
        logger.debug("No configuration file at %s", path)
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"Configuration file {path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ConfigMissingError(f"Unable to read configuration file {path}: {e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Configuration file {path} is not valid YAML: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigParseError(f"Configuration file {path} must contain a mapping")
    logger.debug("Loaded configuration from %s", path)
    return Configuration(
        url=_as_text(data.get("url")),
        token=_as_text(data.get("token")),
    )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def require_config(path: str | Path | None = None) -> Configuration:
    """Like load_config, but a missing file is an error."""
    config = load_config(path)
    if config is None:
        raise ConfigMissingError(
            f"Configuration file {_config_path(path)} not found. "
            "Please run command 'configure' and try again",
        )
    return config


def save_config(config: Configuration, path: str | Path | None = None) -> Path:
    """Write the configuration, replacing the whole file.

    The document goes to a temp file in the same directory first and is
    then renamed over the target.
    """
    path = _config_path(path)
    content = yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    except OSError as e:
        raise ConfigWriteError(f"Unable to write configuration file {path}: {e}") from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise ConfigWriteError(f"Unable to write configuration file {path}: {e}") from e
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("Saved configuration to %s", path)
    return path


def merge_config(
    existing: Configuration | None,
    url: str | None = "",
    token: str | None = "",
) -> Configuration:
    """Return a new Configuration with non-empty values overriding stored ones."""
    base = existing or Configuration()
    return Configuration(
        url=url if url else base.url,
        token=token if token else base.token,
    )


def validate_config(config: Configuration) -> None:
    """Raise unless both URL and token are set. URL is checked first."""
    if not config.url:
        raise NotConfiguredError("Please run command 'configure' and try again")
    if not config.token:
        raise NotAuthenticatedError("Please run command 'login' and try again")


# ── JSON parameter flattening ────────────────────────────────────────────


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _loads(text: str) -> Any:
    """json.loads without the NaN and Infinity extensions."""
    return json.loads(text, parse_constant=_reject_constant)


def is_json(text: str) -> bool:
    try:
        _loads(text)
    except (json.JSONDecodeError, ValueError):
        return False
    return True


def read_json_file(path: str | Path) -> str:
    """Read a file and make sure its whole content is one JSON document."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InvalidJSONError("The specified file does not contain valid JSON") from e
    except OSError as e:
        raise ParameterFileError(f"Unable to read file {path}: {e}") from e
    if not is_json(text):
        raise InvalidJSONError("The specified file does not contain valid JSON")
    return text


def _format_scalar(value: Any) -> str | None:
    """Text form of a scalar for a query string, or None to skip it.

    Type priority: integer, float, boolean, string. bool is checked
    ahead of int only because Python treats it as an int subclass.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        # shortest decimal that round-trips
        return repr(value)
    if isinstance(value, str):
        return value
    return None


def flatten_query_params(obj: dict[str, Any]) -> str:
    """Flatten a JSON object into '?k=v&k2=v2'.

    Objects, arrays and nulls are skipped. An object with no scalar
    values yields an empty string.
    """
    pairs = []
    for key, value in obj.items():
        text = _format_scalar(value)
        if text is None:
            continue
        pairs.append(f"{key}={text}")
    if not pairs:
        return ""
    return "?" + "&".join(pairs)


def query_string_from_file(path: str | Path) -> str:
    text = read_json_file(path)
    obj = _loads(text)
    if not isinstance(obj, dict):
        raise InvalidJSONError("The specified file must contain a JSON object")
    return flatten_query_params(obj)


def body_from_file(path: str | Path) -> str:
    """Read a JSON body, dropping line terminators so it fits one argument."""
    text = read_json_file(path)
    return text.replace("\r\n", "").replace("\n", "")


def check_exclusive(data: str | None, file: str | None) -> None:
    if data and file:
        raise ConflictingParametersError("Parameter --data cannot be used with parameter --file")


def resolve_body(data: str | None, file: str | None) -> str:
    """Return the request body from inline --data or --file, or ''."""
    check_exclusive(data, file)
    if data:
        if not is_json(data):
            raise InvalidJSONError("Parameter --data is not in a proper JSON representation")
        return data
    if file:
        return body_from_file(file)
    return ""
