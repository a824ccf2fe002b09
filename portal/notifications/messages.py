"""
Plain-text rendering of notification intents.
"""

from portal.notifications.intents import NotificationIntent, NotificationType

SUBJECTS = {
    NotificationType.LOGIN_NOTIFICATION: "New sign-in to your Acclaim Portal account",
    NotificationType.MEMBER_REMOVAL_REQUEST: "Member removal request",
    NotificationType.OWNER_DELEGATION_REQUEST: "Owner delegation request",
    NotificationType.OWNERSHIP_REMOVAL_REQUEST: "Ownership removal request",
}

REQUEST_SUMMARIES = {
    NotificationType.MEMBER_REMOVAL_REQUEST: "asks for {target} to be removed from {organisation}.",
    NotificationType.OWNER_DELEGATION_REQUEST: "asks for {target} to be made an owner of {organisation}.",
    NotificationType.OWNERSHIP_REMOVAL_REQUEST: "asks for {target} to lose owner rights in {organisation}.",
}


def render_subject(intent: NotificationIntent) -> str:
    subject = SUBJECTS[intent.type]
    if intent.type != NotificationType.LOGIN_NOTIFICATION:
        subject = f"{subject}: {intent.payload['organisation_name']}"
    return subject


def render_body(intent: NotificationIntent) -> str:
    p = intent.payload
    if intent.type == NotificationType.LOGIN_NOTIFICATION:
        method = "Azure single sign-on" if p["login_method"] == "azure_sso" else "email and password"
        return (
            f"Hello {p['user_name']},\n\n"
            f"Your account was signed in to using {method}.\n\n"
            f"Time: {p['login_time']}\n"
            f"IP address: {p['ip_address']}\n"
            f"Browser: {p['user_agent']}\n\n"
            "If this was you, no action is needed. If not, change your password "
            "and contact Acclaim straight away.\n"
        )

    target = f"{p['target_name']} ({p['target_email']})"
    summary = REQUEST_SUMMARIES[intent.type].format(target=target, organisation=p["organisation_name"])
    lines = [
        f"{p['requester_name']} ({p['requester_email']}) {summary}",
        "",
        f"Organisation id: {p['organisation_id']}",
        f"Target user id: {p['target_id']}",
        f"Reason: {p.get('reason') or 'Not given'}",
        "",
        "No change has been made. Review and apply it from the admin panel.",
    ]
    return "\n".join(lines) + "\n"
