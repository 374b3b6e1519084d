"""Resolvers turning step identifiers into step classes."""

import hashlib
import importlib
import importlib.util
import inspect
import sys
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from types import ModuleType
from typing import Optional

from structlog import get_logger

from .base_step import PipelineStep
from .errors import StepResolutionError

logger = get_logger(__name__)

# Modules loaded from a file path are registered in sys.modules with this prefix
FILE_MODULE_PREFIX = "_etl_pipeline_steps"


class StepResolver(ABC):
    """Turns a string identifier into a step class."""

    @abstractmethod
    def resolve(self, identifier: str, search_paths: Sequence[str] = ()) -> type:
        """Resolve an identifier.

        Args:
            identifier: Name of the step
            search_paths: Ordered roots to try after the identifier itself

        Returns:
            The resolved class

        Raises:
            StepResolutionError: If the identifier cannot be resolved
        """
        pass


class RegistryStepResolver(StepResolver):
    """Resolves identifiers from an in-memory registry of step classes."""

    def __init__(self, steps: Optional[dict[str, type]] = None):
        self._steps: dict[str, type] = {}
        for name, step_class in (steps or {}).items():
            self.register(name, step_class)

    def register(self, name: str, step_class: type) -> "RegistryStepResolver":
        """Register a step class under a name.

        Args:
            name: Identifier used in pipeline configurations
            step_class: Class returned for that identifier

        Returns:
            Self for method chaining
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Step name must be a non-empty string")
        if name in self._steps:
            raise ValueError(f"Duplicate step name: {name}")

        self._steps[name] = step_class
        return self

    def resolve(self, identifier: str, search_paths: Sequence[str] = ()) -> type:
        try:
            return self._steps[identifier]
        except KeyError:
            raise StepResolutionError(f"No step registered as {identifier}") from None

    def names(self) -> list[str]:
        """Get registered names in registration order."""
        return list(self._steps)


class ModuleStepResolver(StepResolver):
    """Resolves identifiers by importing Python modules.

    Accepted identifiers:
        package.module              single step class defined in the module
        package.module:ClassName    explicit class
        path/to/step.py             file path, ``.py`` may be omitted
        path/to/step.py:ClassName

    The identifier is tried as given first (import by name, or a path relative
    to the working directory), then under each search path in order.
    """

    def resolve(self, identifier: str, search_paths: Sequence[str] = ()) -> type:
        target, _, attribute = identifier.partition(":")
        if not target:
            raise StepResolutionError(f"Empty module in step identifier {identifier!r}")

        candidates: list[str] = [target]
        candidates.extend(str(Path(root) / target) for root in search_paths)

        attempted: list[str] = []
        last_error: Optional[Exception] = None

        for index, candidate in enumerate(candidates):
            attempted.append(candidate)
            try:
                if index == 0:
                    module = self._import_direct(candidate)
                else:
                    module = self._import_from_root(Path(search_paths[index - 1]), target)
            except Exception as e:
                logger.debug(
                    "Step module candidate failed",
                    identifier=identifier,
                    candidate=candidate,
                    error=str(e),
                )
                last_error = e
                continue

            return self._get_step_class(module, attribute or None)

        raise StepResolutionError(
            f"Could not resolve {identifier}, tried: {', '.join(attempted)}"
        ) from last_error

    def _import_direct(self, target: str) -> ModuleType:
        """Import a module by dotted name or by path relative to the working directory."""
        if _looks_like_path(target):
            return _import_file(_as_python_file(Path(target)))
        return importlib.import_module(target)

    def _import_from_root(self, root: Path, target: str) -> ModuleType:
        """Import a module located under a search root."""
        if _looks_like_path(target):
            return _import_file(_as_python_file(root / target))

        relative = Path(*target.split("."))
        module_file = root / relative.with_suffix(".py")
        if module_file.is_file():
            return _import_file(module_file)

        package_init = root / relative / "__init__.py"
        if package_init.is_file():
            return _import_file(package_init)

        raise ModuleNotFoundError(f"No module {target} under {root}")

    def _get_step_class(self, module: ModuleType, attribute: Optional[str]) -> type:
        """Pick the step class out of an imported module."""
        if attribute:
            found = getattr(module, attribute, None)
            if not inspect.isclass(found):
                raise StepResolutionError(f"{module.__name__} has no class {attribute}")
            return found

        exported = getattr(module, "STEP", None)
        if inspect.isclass(exported):
            return exported

        defined = [
            obj
            for _, obj in inspect.getmembers(module, inspect.isclass)
            if issubclass(obj, PipelineStep)
            and obj.__module__ == module.__name__
            and not inspect.isabstract(obj)
        ]
        if len(defined) != 1:
            raise StepResolutionError(
                f"{module.__name__} defines {len(defined)} step classes, "
                "name one with module:ClassName"
            )
        return defined[0]


def _looks_like_path(target: str) -> bool:
    return target.endswith(".py") or "/" in target or "\\" in target or target.startswith(".")


def _as_python_file(path: Path) -> Path:
    if path.suffix != ".py":
        path = path.with_name(path.name + ".py")
    if not path.is_file():
        raise FileNotFoundError(f"No step module at {path}")
    return path


def _import_file(path: Path) -> ModuleType:
    """Load a module from a file, reusing it if it was loaded before."""
    resolved = path.resolve()
    digest = hashlib.sha1(str(resolved).encode("utf-8")).hexdigest()[:12]
    module_name = f"{FILE_MODULE_PREFIX}_{resolved.stem.replace('-', '_')}_{digest}"

    if module_name in sys.modules:
        return sys.modules[module_name]

    spec = importlib.util.spec_from_file_location(module_name, resolved)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load step module from {resolved}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[module_name]
        raise
    return module
