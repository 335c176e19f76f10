# errors.py
# Exceptions raised by the contest services and translated to JSON by the routes


class ContestError(Exception):
    """Base class for every error the contest services raise on purpose."""
    kind = 'contest_error'
    status_code = 400

    def to_dict(self):
        return {'error': str(self), 'kind': self.kind}


class ValidationError(ContestError):
    kind = 'validation_error'


class ConfigurationError(ContestError):
    """metrics_config is malformed or its weights do not add up to 100."""
    kind = 'configuration_error'


class AccessDenied(ContestError):
    kind = 'access_denied'
    status_code = 403


class ResultsAlreadyPublished(ContestError):
    kind = 'already_published'
    status_code = 409


class PersistenceError(ContestError):
    """A write was rejected by the database; nothing was committed."""
    kind = 'persistence_error'
    status_code = 503
