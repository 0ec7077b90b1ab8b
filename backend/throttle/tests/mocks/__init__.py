from throttle.tests.mocks.clock import ManualClock

__all__ = ["ManualClock"]
