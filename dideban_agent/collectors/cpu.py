"""
CPU usage collector.

Collects:
- Usage percentage across all cores (rounded)
- Load averages (1, 5, 15 minutes, raw)
"""

import psutil

from ..const import DEFAULT_CPU_SAMPLE_INTERVAL
from ..models.snapshot import CPUStats, round_percent
from .base import Probe


class CPUProbe(Probe):
    """
    Probe for CPU usage and load averages.

    psutil.cpu_percent() blocks for the whole sampling window; the base
    class runs it in a worker thread so shutdown is not delayed by an
    in-progress sample.
    """

    name = "cpu"
    failure_message = "failed to get CPU usage"

    def __init__(self, sample_interval: float = DEFAULT_CPU_SAMPLE_INTERVAL):
        self.sample_interval = sample_interval

    def read(self) -> CPUStats:
        usage = psutil.cpu_percent(interval=self.sample_interval)
        load1, load5, load15 = psutil.getloadavg()

        return CPUStats(
            usage_percent=round_percent(usage),
            load_1=load1,
            load_5=load5,
            load_15=load15,
        )
