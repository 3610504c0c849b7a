from .scheduler import SimulationConfig, SimulationScheduler, TickResult

__all__ = ["SimulationConfig", "SimulationScheduler", "TickResult"]
