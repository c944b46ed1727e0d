class OddsArbError(Exception):
    pass


class SourceUnavailable(OddsArbError):
    """An odds source could not contribute at all (credentials, connectivity)."""


class PartialFetchFailure(OddsArbError):
    """A single sport within a source failed; the batch carries on."""


class CalculationError(OddsArbError):
    pass


class PersistenceFailure(OddsArbError):
    """The replace-persist step failed and was rolled back."""


class RefreshInProgress(OddsArbError):
    pass
