from .step_10_detect_system import DetectSystemStep
from .step_20_resolve_components import ResolveComponentsStep
from .step_30_build_plan import BuildPlanStep
from .step_40_execute_plan import ExecutePlanStep

__all__ = [
    "DetectSystemStep",
    "ResolveComponentsStep",
    "BuildPlanStep",
    "ExecutePlanStep",
]
