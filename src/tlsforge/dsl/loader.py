"""Dynamic scenario file loading via importlib."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

from tlsforge._internal.errors import ScenarioError, TlsForgeError
from tlsforge.dsl.scenario import ScenarioDefinition

# The hello-nginx TLS probe shipped with the package.
BUILTIN_SCENARIO = Path(__file__).resolve().parent.parent / "scenarios" / "hellonginx.py"


def load_scenario(file_path: str | Path) -> ScenarioDefinition:
    """Load a scenario from a Python file.

    Imports the file with ``importlib`` and returns the first
    ``ScenarioDefinition`` found among its globals.

    Args:
        file_path: Path to the scenario file.

    Returns:
        The scenario definition.

    Raises:
        ScenarioError: If the file is missing, is not a ``.py`` file,
            fails to import, or defines no scenario.
        ConfigError: If the module raises one while importing (for
            example an invalid ``TestOptions``).
    """
    path = Path(file_path)

    if not path.exists():
        msg = f"Scenario file not found: {path}"
        raise ScenarioError(msg)

    if path.suffix != ".py":
        msg = f"Scenario file must be a .py file, got: {path}"
        raise ScenarioError(msg)

    module_name = f"tlsforge_scenario_{path.stem}"

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        msg = f"Could not create module spec for: {path}"
        raise ScenarioError(msg)

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module

    try:
        spec.loader.exec_module(module)
    except TlsForgeError:
        sys.modules.pop(module_name, None)
        raise
    except Exception as exc:
        sys.modules.pop(module_name, None)
        msg = f"Failed to import scenario file {path}: {exc}"
        raise ScenarioError(msg) from exc

    definitions = [obj for obj in vars(module).values() if isinstance(obj, ScenarioDefinition)]

    if not definitions:
        sys.modules.pop(module_name, None)
        msg = f"No @scenario-decorated function found in {path}"
        raise ScenarioError(msg)

    return definitions[0]
