class HouseEdgeError(Exception):
    pass


class ConfigError(HouseEdgeError):
    pass


class LedgerError(HouseEdgeError):
    pass


class DuplicateBetError(LedgerError):
    pass


class InvalidTransitionError(LedgerError):
    pass


class LedgerPersistenceError(LedgerError):
    pass
