"""
batchwire - Event-triggered batch job runner

Polls a watched directory and an external record table, turns each new
file or READY record into a job launch request, and runs the job's
tasklet and chunk steps on a worker pool.
"""

__version__ = "0.1.0"


__all__ = ["BatchwireConfig", "load_config", "get_batchwire_home"]

from .config import BatchwireConfig, load_config, get_batchwire_home
