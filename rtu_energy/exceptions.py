"""Exceptions and warnings raised by the cooling energy engine."""


class RTUEnergyError(Exception):
    pass


class InputError(RTUEnergyError, ValueError):
    """Raised when a required numeric input is missing or invalid. The
    current run cannot be continued.
    """
    pass


class PsychrometricError(RTUEnergyError):
    """Raised when a psychrometric solve runs into a physically inconsistent
    state (e.g. the process line of the coil never reaches saturation).

    Attributes `unit_name` and `stage` can be filled in by the caller to
    indicate which unit (e.g. 'Candidate' or 'Standard') and which stage
    the failure belongs to.
    """
    def __init__(self, message: str, unit_name: str | None = None, stage: str | None = None):
        super().__init__(message)
        self.message = message
        self.unit_name = unit_name
        self.stage = stage

    def __str__(self):
        prefix = ''
        if self.unit_name is not None:
            prefix += f"{self.unit_name} Unit"
        if self.stage is not None:
            prefix += f" (stage {self.stage})" if prefix else f"Stage {self.stage}"
        return f"{prefix}: {self.message}" if prefix else self.message


class RegressionError(RTUEnergyError):
    """Raised when a least-squares model cannot be fitted."""
    pass


class StagingFailure(RTUEnergyError):
    """Raised when the compressor runtime needed in integrated economizer
    operation falls outside the interval [0, 1].
    """
    def __init__(self, message: str, runtime: float | None = None):
        super().__init__(message)
        self.runtime = runtime


class RegressionWarning(RuntimeWarning):
    pass


class DesignConditionWarning(RuntimeWarning):
    pass
