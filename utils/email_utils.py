from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.conf import settings
from celery import shared_task
import logging

logger = logging.getLogger('estate.email')


class EmailService:
    """Templated transactional email.

    Every message has an HTML and a text part rendered from
    ``templates/emails/<name>.html`` and ``.txt``. Callers use ``queue``;
    delivery happens on the worker so a slow SMTP server never holds a request.
    """

    @staticmethod
    def render(template_name, context):
        return (
            render_to_string(f'emails/{template_name}.txt', context),
            render_to_string(f'emails/{template_name}.html', context),
        )

    @staticmethod
    def send_templated_email(template_name, context, recipient_list, subject):
        text_content, html_content = EmailService.render(template_name, context)
        email = EmailMultiAlternatives(
            subject=subject,
            body=text_content,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=recipient_list,
        )
        email.attach_alternative(html_content, "text/html")
        return email.send()

    @staticmethod
    def queue(template_name, context, recipient, subject):
        """Hand an email to the worker when email notifications are enabled"""
        if not settings.FEATURES.get('EMAIL_NOTIFICATIONS', True):
            return None
        if not recipient:
            logger.warning(f"Skipping {template_name} email: no recipient")
            return None
        context = {'frontend_url': settings.FRONTEND_URL, **context}
        return send_email_async.delay(template_name, context, [recipient], subject)


@shared_task(bind=True, max_retries=3)
def send_email_async(self, template_name, context, recipient_list, subject):
    try:
        sent = EmailService.send_templated_email(template_name, context, recipient_list, subject)
    except Exception as e:
        if self.request.retries < self.max_retries:
            countdown = 2 ** self.request.retries * 60
            raise self.retry(countdown=countdown, exc=e)
        logger.error(f"Failed to send {template_name} email to {recipient_list}: {str(e)}")
        return False

    logger.info(f"Sent {template_name} email to {recipient_list}")
    return bool(sent)
