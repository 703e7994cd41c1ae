"""Error taxonomy shared by the scheduling engine and the HTTP layer.

Business-rule failures and infrastructure failures are kept apart so that a
caller can choose between a retry affordance and a "choose another slot"
affordance.
"""


class SchedulingError(Exception):
    """Base class for every failure the engine reports to its callers."""

    code = 'scheduling_error'
    status_code = 400
    retryable = False
    default_message = 'Scheduling request failed.'

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def detail(self) -> dict:
        return {'code': self.code, 'message': str(self)}


class InvalidRequest(SchedulingError):
    code = 'invalid_request'
    default_message = 'Invalid scheduling request.'


class ServiceNotFound(SchedulingError):
    code = 'service_not_found'
    status_code = 404
    default_message = 'Service not found.'


class ProviderNotFound(SchedulingError):
    code = 'provider_not_found'
    status_code = 404
    default_message = 'Provider not found.'


class AppointmentNotFound(SchedulingError):
    code = 'appointment_not_found'
    status_code = 404
    default_message = 'Appointment not found.'


class NoAvailability(SchedulingError):
    """The provider does not work at the requested day or time."""

    code = 'no_availability'
    status_code = 409
    default_message = 'Provider does not work at the requested time.'


class NoProviderAvailable(SchedulingError):
    code = 'no_provider_available'
    status_code = 409
    default_message = 'No provider is available at the requested time.'


class SlotConflict(SchedulingError):
    code = 'slot_conflict'
    status_code = 409
    default_message = 'This time is already booked. Choose another time.'


class ClientDoubleBooked(SchedulingError):
    code = 'client_double_booked'
    status_code = 409
    default_message = 'You already have an appointment at this time.'


class TooLateToCancel(SchedulingError):
    code = 'too_late_to_cancel'
    default_message = 'Appointments can only be cancelled at least 2 hours in advance.'


class Forbidden(SchedulingError):
    code = 'forbidden'
    status_code = 403
    default_message = 'Not authorized to change this appointment.'


class NotCancellable(SchedulingError):
    code = 'not_cancellable'
    status_code = 409
    default_message = 'This appointment can no longer be changed.'


class StorageUnavailable(SchedulingError):
    code = 'storage_unavailable'
    status_code = 503
    retryable = True
    default_message = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class ReviewNotFound(SchedulingError):
    code = 'review_not_found'
    status_code = 404
    default_message = 'Review not found.'


class AlreadyReviewed(SchedulingError):
    code = 'already_reviewed'
    status_code = 409
    default_message = 'This appointment has already been reviewed.'
