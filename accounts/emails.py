from utils.email_utils import EmailService


def send_welcome_email(user):
    return EmailService.queue(
        'welcome',
        {'name': user.name, 'email': user.email},
        user.email,
        'Welcome to Estate',
    )


def send_agent_welcome_email(agent):
    return EmailService.queue(
        'agent_welcome',
        {'name': agent.name, 'email': agent.email},
        agent.email,
        'Your agent application has been received',
    )


def send_agent_status_email(agent):
    approved = agent.status == 'approved'
    return EmailService.queue(
        'agent_status',
        {'name': agent.name, 'status': agent.status, 'approved': approved},
        agent.email,
        'Your agent account has been approved' if approved else 'Update on your agent application',
    )
