# errors.py
# Exceptions raised by the report pipeline
# -------------------------------------------------------------------


class TerrorWavesError(Exception):
    """Base class for every error the pipeline raises on purpose."""


class DataValidationError(TerrorWavesError, ValueError):
    """Input table is missing columns, has malformed values, or an empty subset."""


class ModelFitError(TerrorWavesError, RuntimeError):
    """Sampling failed, did not converge, or produced non-finite fit statistics."""

    def __init__(self, message, wave=None):
        self.wave = wave
        if wave is not None:
            message = f"[{wave}] {message}"
        super().__init__(message)
