from pgsample.core.dump import DumpEmitter, DumpResult, make_dump, plan_dump
from pgsample.core.resolver import DependencyResolver

__all__ = [
    "DependencyResolver",
    "DumpEmitter",
    "DumpResult",
    "make_dump",
    "plan_dump",
]
