from .config import RecursionRule, Settings, load_settings
from .errors import HelmlintError, InstrumentationError, RenderError, SetupError
from .lint import lint
from .recursion import recurse_configmap
from .schemas import Finding, LintReport
from .testing import assert_chart_lints

__all__ = [
    "RecursionRule",
    "Settings",
    "load_settings",
    "HelmlintError",
    "InstrumentationError",
    "RenderError",
    "SetupError",
    "lint",
    "recurse_configmap",
    "Finding",
    "LintReport",
    "assert_chart_lints",
]
