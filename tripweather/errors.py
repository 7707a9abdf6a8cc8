"""Error taxonomy for trip-weather operations."""


class TripWeatherError(Exception):
    """Base class for errors raised by the trip-weather engine."""


class InputError(TripWeatherError, ValueError):
    """Invalid caller input (degenerate geometry, missing endpoints, bad index)."""


class CollaboratorError(TripWeatherError):
    """A routing, forecast or geocoding service returned an unusable answer."""


class RouteUnavailableError(CollaboratorError):
    """No route could be obtained for the trip; the caller may retry."""


class StaleRequestError(TripWeatherError):
    """A resolution pass was superseded by a newer one and must be discarded."""
