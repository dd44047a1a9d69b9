"""
Core classes and types for the sitepipe build pipeline.
"""
from __future__ import annotations

import abc
import inspect
import typing as t
from pathlib import Path

from .exceptions import StepUnavailableException
from .pretty_utils import print_with_style
from .server import Reloader

if t.TYPE_CHECKING:
    from collections.abc import Callable, Sequence, Set
    from .dependencies import Dependency


T = t.TypeVar('T')
T2 = t.TypeVar('T2')
ContextDir = t.Literal['source_dir', 'site_dir', 'output_dir', 'working_dir']
StyleEngine = t.Literal['postcss', 'lightningcss']


class InputBuildSettings(t.TypedDict, total=False):
    """
    TypedDict for defining build settings in a sitepipe config file.
    """
    source_dir: Path
    site_dir: Path
    output_dir: Path
    working_dir: Path | None
    webpack_config: Path
    style_engine: StyleEngine
    style_variables: dict[str, str]

class BuildSettings(t.TypedDict):
    """
    TypedDict for processed build settings ready for passing to Context.
    """
    source_dir: Path
    site_dir: Path
    output_dir: Path
    working_dir: Path
    webpack_config: Path
    style_engine: StyleEngine
    style_variables: dict[str, str]


class Context:
    """
    A context and configuration class shared by every task of a build.
    """
    def __init__(self, settings: BuildSettings, reloader: Reloader | None = None):
        self.settings = settings
        self.reloader = reloader or Reloader()

    @t.overload
    def __getitem__(self, key: ContextDir | t.Literal['webpack_config']) -> Path: ...
    @t.overload
    def __getitem__(self, key: t.Literal['style_engine']) -> StyleEngine: ...
    @t.overload
    def __getitem__(self, key: t.Literal['style_variables']) -> dict[str, str]: ...
    def __getitem__(self, key):
        return self.settings[key]

    def require(self, component: Component | type[Component]):
        """
        Raise `StepUnavailableException` if @component's requirements are not
        installed.
        """
        if not component.is_available():
            raise StepUnavailableException(component)

    def bind(self, step: Step | None):
        """
        Bind a Step to this Context, checking to ensure its availability.
        """
        if step:
            self.require(step)
            step.bind(self)

    def find_inputs(self, path: Path):
        """
        Overridable function to get paths to process based on a given @path.
        Default behavior is to recursively search for files but exclude the
        directories themselves.
        """
        if not path.is_dir():
            return
        for candidate in sorted(path.iterdir()):
            if candidate.is_dir():
                yield from self.find_inputs(candidate)
            else:
                yield candidate


class Matcher(t.Generic[T], abc.ABC):
    """
    Abstract base class for Path Matchers. Matchers combine with |, the
    first truthy match winning.
    """
    @abc.abstractmethod
    def __call__(self, context: Context, path: Path) -> T:
        ...

    def __or__(self, other: Matcher[T2]):
        return _OrMatcher(self, other)


class _OrMatcher(Matcher[T | T2]):
    def __init__(self, left: Matcher[T], right: Matcher[T2]):
        self.left = left
        self.right = right

    def __call__(self, context: Context, path: Path):
        return self.left(context, path) or self.right(context, path)


class PathCalc(t.Generic[T], abc.ABC):
    """
    Abstract base class for path calculators which use `Matcher` match data to
    determine output paths from input paths.
    """
    @abc.abstractmethod
    def __call__(self, context: Context, path: Path, match: T) -> Path:
        ...


class Rule(t.Generic[T]):
    """
    A single rule for stage file processing, with a matcher, output path
    calculators, and an optional Step to run.
    """
    def __init__(self,
                 matcher: Matcher[T],
                 path_calc: t.Sequence[PathCalc[T] | None] | PathCalc[T] | None,
                 step: Step | None = None):
        self.matcher = matcher
        self.step = step
        if not isinstance(path_calc, t.Sequence):
            path_calc = [path_calc]
        self.path_calcs = list(path_calc)


class Component(abc.ABC):
    """
    Abstract base class for anything that relies on external tools or
    packages. Keeps a registry of subclasses for dependency audits.
    """
    _registry: list[t.Type[Component]] = []

    def __init_subclass__(cls, **kw):
        super().__init_subclass__(**kw)
        cls._registry.append(cls)

    @classmethod
    def get_all_components(cls):
        """
        Return a list of all currently known concrete Components.
        """
        return [c for c in cls._registry if not inspect.isabstract(c)]

    @classmethod
    def get_available_components(cls):
        """
        Return a list of all currently known concrete Components whose
        requirements are met.
        """
        return [c for c in cls.get_all_components() if c.is_available()]

    @classmethod
    def is_available(cls) -> bool:
        """
        Return whether this Component's requirements are installed, making it
        available for use.
        """
        return all(d.satisfied for d in cls.get_dependencies())

    @classmethod
    def get_dependencies(cls) -> Set[Dependency]:
        """
        Return the requirements for this Component.
        """
        return set()


class Step(Component):
    """
    Abstract base class for Steps, per-file units of work used by the Rules of
    a Stage.
    """
    context: Context

    def bind(self, context: Context):
        """
        Bind this Step to a Context.
        """
        self.context = context

    @abc.abstractmethod
    def __call__(self, path: Path, output_paths: list[Path]) -> None:
        ...


class Action(Component):
    """
    Abstract base class for whole-task work that is not driven by input files,
    such as running a bundler or a site generator.
    """
    @abc.abstractmethod
    def __call__(self, context: Context) -> None:
        ...


class Stage:
    """
    A named unit of build work. Runs its actions, then pushes every file under
    its source directory through its Rules.
    """
    def __init__(self,
                 name: str,
                 rules: Sequence[Rule] = (),
                 source: ContextDir = 'source_dir',
                 actions: Sequence[Callable[[Context], None]] = (),
                 stream: bool = True):
        self.name = name
        self.rules = list(rules)
        self.source: ContextDir = source
        self.actions = list(actions)
        self.stream = stream

    def __repr__(self):
        return f'{self.__class__.__name__}({self.name!r})'

    def match_paths(self, context: Context, input_paths: list[Path]):
        """
        Match a set of input paths against the Stage's Rules, and associate
        them with the Steps of those Rules.
        """
        # Steps run in the order their Rules were declared.
        tasks: dict[Step, list[tuple[Path, list[Path]]]]
        tasks = {r.step: [] for r in self.rules if r.step}

        for path in input_paths:
            for rule in self.rules:
                if match := rule.matcher(context, path):
                    # None can be used to halt further rule processing.
                    if not rule.step:
                        break
                    output_paths: list[Path] = []
                    for pathcalc in rule.path_calcs:
                        # A None path calc runs this rule, then halts.
                        if not pathcalc:
                            break
                        output_paths.append(pathcalc(context, path, match))
                    else:
                        tasks[rule.step].append((path, output_paths))
                        continue
                    tasks[rule.step].append((path, output_paths))
                    break

        return tasks

    def __call__(self, context: Context):
        for action in self.actions:
            action(context)

        if not self.rules:
            return

        input_paths = list(context.find_inputs(context[self.source]))
        tasks = self.match_paths(context, input_paths)

        # Only Steps with work to do need their external tools.
        for step, paths in tasks.items():
            if paths:
                context.bind(step)

        count = 0
        for step, paths in tasks.items():
            for path, output_paths in paths:
                step(path, output_paths)
                count += 1
                print_with_style(
                    f'[{self.name}] {path} ⇒ {", ".join(str(p) for p in output_paths)}',
                    style='dim'
                )

        print_with_style(f'[{self.name}] processed {count} file(s)')
        if self.stream:
            context.reloader.reload()

