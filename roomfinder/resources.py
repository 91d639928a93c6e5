"""Spoken and card text, per locale.

Strings use ``str.format`` fields.  ``translate`` falls back to the default
locale for unknown locales and missing keys.
"""

from __future__ import annotations

import logging

log = logging.getLogger("roomfinder.resources")

EN_GB: dict[str, str] = {
    "skill_name": "Room Finder",

    # IDLE
    "welcome_message": (
        "Welcome to Room Finder. Would you like me to book you a meeting room?"
    ),
    "welcome_reprompt": (
        "I'm Room Finder. I book meeting rooms. Say yes to book one, "
        "or ask me for help."
    ),
    "help_message": (
        "I can book a free meeting room for you, starting now. "
        "Just say book me a room."
    ),
    "help_reprompt": "Would you like me to book a meeting room?",
    "unhandled_message": "Sorry, I didn't catch that. Would you like to book a meeting room?",
    "unhandled_reprompt": "Say yes to book a meeting room, or stop to leave.",

    # COLLECTING_DURATION
    "duration_message": "How long do you need the room for?",
    "duration_reprompt": "Tell me how long the meeting is, for example thirty minutes.",
    "duration_help_message": (
        "Tell me how long you need a room for, starting now. "
        "I can book up to {max_minutes} minutes."
    ),
    "duration_help_reprompt": "How long do you need the room for?",
    "duration_too_long_message": (
        "Sorry, I can only book a room for up to {max_minutes} minutes. "
        "How long do you need it for?"
    ),
    "duration_too_long_reprompt": "Please give me a length of {max_minutes} minutes or less.",
    "duration_too_short_message": (
        "That meeting would be over before it started. How long do you need the room for?"
    ),
    "duration_too_short_reprompt": "Please give me a length longer than zero minutes.",
    "duration_unhandled_message": (
        "Sorry, I didn't understand that length. How long do you need the room for?"
    ),
    "duration_unhandled_reprompt": "Tell me a length such as half an hour.",
    "duration_unavailable_message": (
        "Sorry, no room is free for the next {minutes} minutes. "
        "Would a shorter meeting work? Tell me how long."
    ),
    "duration_unavailable_reprompt": (
        "No room is free for the next {minutes} minutes. Try a shorter length."
    ),

    # AWAITING_CONFIRMATION
    "room_available_message": (
        "{room} is free for the next {minutes} minutes. Shall I book it?"
    ),
    "room_available_reprompt": "Shall I book {room} for you?",
    "booking_help_message": (
        "I found {room} free for you. Say yes to book it, or no to leave it."
    ),
    "booking_help_reprompt": "Shall I book {room}?",
    "booking_unhandled_message": "Sorry, should I book {room}? Please say yes or no.",
    "booking_unhandled_reprompt": "Say yes to book {room}, or no to leave it.",

    # Outcomes
    "room_booked": "Done. {room} is booked for you for {minutes} minutes.",
    "card_room_booked_title": "{room} booked",
    "card_room_booked_content": "{room} is booked for {minutes} minutes, from {start} to {end} UTC.",
    "room_error": (
        "Sorry, I couldn't check the meeting rooms. "
        "I've sent the details to your app."
    ),
    "room_error_card_title": "Room search failed",
    "booking_error": (
        "Sorry, I couldn't book the room. "
        "I've sent the details to your app."
    ),
    "booking_error_card_title": "Booking failed",
    "generic_error": "Sorry, something went wrong. Please try again later.",
    "stop_message": "Goodbye.",
}

EN_US: dict[str, str] = {
    **EN_GB,
    "duration_help_message": (
        "Tell me how long you need a room for, starting right now. "
        "I can book up to {max_minutes} minutes."
    ),
    "stop_message": "Bye for now.",
}

LANGUAGE_STRINGS: dict[str, dict[str, str]] = {
    "en-GB": EN_GB,
    "en-US": EN_US,
}

DEFAULT_LOCALE = "en-GB"


def translate(locale: str | None, key: str, default_locale: str = DEFAULT_LOCALE, **fields) -> str:
    """Look up ``key`` for ``locale`` and fill in ``fields``."""
    table = LANGUAGE_STRINGS.get(locale or "") or LANGUAGE_STRINGS[default_locale]
    template = table.get(key)
    if template is None:
        log.warning("No %s string for %r, using %s", locale, key, default_locale)
        template = LANGUAGE_STRINGS[default_locale][key]
    return template.format(**fields)
