from celery import shared_task

from .services.notification_service import NotificationService


@shared_task(name="travels_main_app.tasks.deliver_booking_event", ignore_result=True)
def deliver_booking_event(event):
    # At-most-once: no autoretry on failure
    return NotificationService().deliver(event)
