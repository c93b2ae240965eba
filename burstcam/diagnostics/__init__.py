from .timing import LATE_FACTOR, TimingDiagnostics, compute_timing, write_timing_csv

__all__ = ["LATE_FACTOR", "TimingDiagnostics", "compute_timing", "write_timing_csv"]
