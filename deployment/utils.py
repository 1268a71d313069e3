import json
from pathlib import Path
from typing import Any, Sequence

import yaml

from deployment.constants import ARTIFACTS_DIR


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def get_artifact_filepath(filename: str, artifact_dir: Path = ARTIFACTS_DIR) -> Path:
    """Returns the filepath of the registry artifact file."""
    if not filename:
        raise ValueError("artifact filename is not set in profile.")
    return Path(artifact_dir) / filename


def format_arguments(arguments: Sequence[Any]) -> str:
    """Comma separated rendering of (possibly nested) call arguments."""
    rendered = list()
    for argument in arguments:
        if isinstance(argument, (list, tuple)):
            rendered.append(f"[{format_arguments(argument)}]")
        else:
            rendered.append(str(argument))
    return ",".join(rendered)
