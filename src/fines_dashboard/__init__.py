from importlib.metadata import PackageNotFoundError, version

from fines_dashboard.features.dataset import Dataset
from fines_dashboard.features.filters import FilterState, apply_filters
from fines_dashboard.features.schema import Schema, infer_schema
from fines_dashboard.stats import chi_square_independence

try:
    __version__ = version("fines-dashboard")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "Dataset",
    "FilterState",
    "Schema",
    "__version__",
    "apply_filters",
    "chi_square_independence",
    "infer_schema",
]
