"""
sitepipe wires a static site generator, a style preprocessor, a module bundler,
image optimizers and a live-reloading dev server into one ordered asset
pipeline.
"""
from .core import Action, BuildSettings, Context, InputBuildSettings, Matcher, PathCalc, Rule, Stage, Step
from .exceptions import StageFailed, StepUnavailableException
from .dependencies import Dependency, NodeModuleDependency, NpmDependency, PipDependency, WebExecDependency
from .generator import PREVIEW_OPTIONS, SiteGenerator
from .images import GifsicleStep, OptipngStep, ResponsiveImageStep, ScourStep
from .orchestrator import TaskRunner
from .paths import DestPathCalc, GlobMatcher
from .pipeline import PARALLEL_STAGES, create_runner
from .rewrite import SrcsetStep
from .scripts import WebpackAction
from .server import LiveReloader, Reloader
from .simple import DirectCopyStep
from .styles import LightningCSSStep, PostCSSStep
