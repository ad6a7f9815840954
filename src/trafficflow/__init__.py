"""Traffic Flow - animated traffic particles over live road geometry."""

from trafficflow.logging_config import configure_logging, get_logger

__version__ = "0.1.0"

__all__ = ["__version__", "configure_logging", "get_logger"]
