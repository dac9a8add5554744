"""YAML loader for session definitions.

Example YAML configuration:

    sessions:
      - name: customer-stream
        technique_id: masking-partial
        parameters:
          visibleStart: 1
        input_source:
          type: file
          name: customers
          configuration:
            file_path: /data/customers.jsonl
            poll_interval: 2000
          schema:
            - field_name: email
              is_sensitive: true
            - field_name: rut
              is_sensitive: true
              anonymization_technique: hash-sha256
        output_target:
          type: file
          name: customers-anon
          configuration:
            file_path: /data/customers.anon.jsonl
"""

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from anonyflow.execution.models import SessionConfig


def load_sessions_from_yaml(path: Union[Path, str]) -> list[SessionConfig]:
    """Load session configurations from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        List of SessionConfig objects, in file order.

    Raises:
        FileNotFoundError: If the configuration file doesn't exist.
        ValueError: If the YAML structure or a session definition is invalid.
        yaml.YAMLError: If the YAML is malformed.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return []

    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML structure: expected dict, got {type(data).__name__}")

    sessions_data = data.get("sessions", [])
    if not isinstance(sessions_data, list):
        raise ValueError(
            f"Invalid sessions structure: expected list, got {type(sessions_data).__name__}"
        )

    configs = []
    for i, entry in enumerate(sessions_data):
        if not isinstance(entry, dict):
            raise ValueError(f"Session {i} is not a dict: {type(entry).__name__}")
        try:
            configs.append(SessionConfig.model_validate(entry))
        except ValidationError as e:
            name = entry.get("name", i)
            raise ValueError(f"Session {name} is invalid: {e}") from e

    return configs


def load_sessions_from_yaml_safe(
    path: Union[Path, str],
) -> tuple[list[SessionConfig], Optional[str]]:
    """Load sessions, returning an error message instead of raising.

    Returns:
        Tuple of (configs, error_message). If successful, error_message is None.
        If failed, configs is an empty list.
    """
    try:
        return load_sessions_from_yaml(path), None
    except FileNotFoundError as e:
        return [], str(e)
    except ValueError as e:
        return [], f"Configuration error: {e}"
    except yaml.YAMLError as e:
        return [], f"YAML parsing error: {e}"
