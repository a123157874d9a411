"""
Metric registry.

Starts with the built-in metric table and can pick up extra metrics via
``importlib.metadata`` entry points (group: ``fitbridge.metrics``).  Other
packages register specs in their own ``pyproject.toml``:

    [project.entry-points."fitbridge.metrics"]
    resting_hr = "my_package.metrics:RESTING_HR"
"""

from importlib.metadata import entry_points

from loguru import logger

from .metrics import BUILTIN_METRICS, MetricSpec


class MetricRegistry:
    """Look up metric specs by name."""

    def __init__(self, include_builtins: bool = True):
        self._metrics: dict[str, MetricSpec] = dict(BUILTIN_METRICS) if include_builtins else {}

    def discover(self) -> dict[str, MetricSpec]:
        """Scan entry points and return the full {name: spec} mapping."""
        for ep in entry_points(group="fitbridge.metrics"):
            try:
                spec = ep.load()
            except Exception as e:
                logger.warning(f"Failed to load metric '{ep.name}': {e}")
                continue
            if isinstance(spec, MetricSpec):
                self._metrics[ep.name] = spec
                logger.debug(f"Discovered metric: {ep.name}")
            else:
                logger.warning(f"Entry point '{ep.name}' is not a MetricSpec, skipping")

        return dict(self._metrics)

    def register(self, spec: MetricSpec) -> None:
        self._metrics[spec.name] = spec

    def get(self, name: str) -> MetricSpec:
        spec = self._metrics.get(name)
        if spec is None:
            raise KeyError(f"No metric registered as '{name}'. Available: {self.list_names()}")
        return spec

    def list_names(self) -> list[str]:
        return sorted(self._metrics)

    def __contains__(self, name: object) -> bool:
        return name in self._metrics
