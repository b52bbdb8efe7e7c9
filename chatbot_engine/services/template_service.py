from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from chatbot_engine.schemas.chatbot_config import MenuOption

DEFAULT_CONTACT_NAME = "there"


def _contact_name(conversation: Any) -> str:
    contact = getattr(conversation, "contact", None)
    name = getattr(contact, "name", None) if contact is not None else None
    if name:
        return name
    context = getattr(conversation, "context", None) or {}
    return context.get("name") or DEFAULT_CONTACT_NAME


def render_template(template: str, conversation: Any, now: Optional[datetime] = None) -> str:
    """
    Fill ``{{contact_name}}``, ``{{contact_phone}}``, ``{{date}}`` and ``{{time}}``.

    Every occurrence is replaced; any other ``{{...}}`` is left as written.
    """
    if not template:
        return template
    now = now or datetime.now(timezone.utc)

    variables = {
        "{{contact_name}}": _contact_name(conversation),
        "{{contact_phone}}": getattr(conversation, "sender_phone", "") or "",
        "{{date}}": now.strftime("%Y-%m-%d"),
        "{{time}}": now.strftime("%H:%M"),
    }

    rendered = template
    for placeholder, value in variables.items():
        rendered = rendered.replace(placeholder, value)
    return rendered


def render_menu(options: Iterable[MenuOption]) -> Optional[str]:
    """Numbered WhatsApp menu, or None when there is nothing to offer."""
    options = list(options)
    if not options:
        return None

    lines = ["📋 *Menu Options*", ""]
    for index, option in enumerate(options, start=1):
        lines.append(f"{index}. *{option.title}*")
        if option.description:
            lines.append(f"   {option.description}")
        lines.append("")
    lines.append("Please type the number of your choice.")
    return "\n".join(lines)
