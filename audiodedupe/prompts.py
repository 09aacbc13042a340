"""
prompts.py

Terminal prompts.

Every helper takes an `ask` callable with the signature of `input`, so
interactive flows can be driven by a script in tests. Menus are numbered
lists; an unknown answer repeats the question.
"""

from audiodedupe.i18n import emit, text

# ================= I18N MESSAGE KEYS =================

MSG_INVALID_OPTION = "INVALID_OPTION"
MSG_MENU_ITEM = "MENU_ITEM"
MSG_YES_NO_HINT = "YES_NO_HINT"
MSG_NUMBER_RANGE = "NUMBER_RANGE"

MSG_FIX_HEADER = "FIX_HEADER"
MSG_FIX_SOURCE = "FIX_SOURCE"
MSG_FIX_CURRENT_HEADER = "FIX_CURRENT_HEADER"
MSG_FIX_FIELD_LINE = "FIX_FIELD_LINE"
MSG_FIX_SUMMARY_HEADER = "FIX_SUMMARY_HEADER"
MSG_FIX_WHAT_NEXT = "FIX_WHAT_NEXT"
MSG_FIX_ACCEPT = "FIX_OPTION_ACCEPT"
MSG_FIX_EDIT = "FIX_OPTION_EDIT"
MSG_FIX_SKIP = "FIX_OPTION_SKIP"
MSG_FIX_QUIT = "FIX_OPTION_QUIT"
MSG_FIX_SAVE_CONFIRM = "FIX_SAVE_CONFIRM"
MSG_FIELD_SELECT = "FIELD_SELECT"
MSG_FIELD_ENTER = "FIELD_ENTER"
MSG_FIELD_KEEP_CURRENT = "FIELD_KEEP_CURRENT"
MSG_FIELD_SUGGESTION = "FIELD_SUGGESTION"
MSG_FIELD_RECENT = "FIELD_RECENT"
MSG_FIELD_CUSTOM = "FIELD_CUSTOM"
MSG_EMPTY = "EMPTY_VALUE"

# ====================================================

COMMON_GENRES = [
    "Rock", "Pop", "Hip-Hop", "R&B", "Electronic", "Jazz", "Classical",
    "Country", "Metal", "Indie", "Folk", "Blues", "Soul", "Funk",
    "Reggae", "Latin", "Soundtrack", "Ambient", "Punk", "Alternative",
]

REPAIR_FIELDS = ("artist", "title", "genre", "album")

CUSTOM = object()


def truncate(s, max_len):
    if len(s) <= max_len:
        return s
    return s[:max_len - 3] + "..."


def choose(ask, prompt_key, options, **params):
    """
    Numbered menu. `options` is a list of (label, value); returns the
    chosen value.
    """
    while True:
        emit(prompt_key, **params)
        for number, (label, _) in enumerate(options, start=1):
            emit(MSG_MENU_ITEM, number=number, label=label)
        answer = ask("> ").strip()
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1][1]
        emit(MSG_INVALID_OPTION)


def confirm(ask, prompt_key, default=False, **params):
    hint = text(MSG_YES_NO_HINT, default="Y/n" if default else "y/N")
    while True:
        answer = ask(f"{text(prompt_key, **params)} {hint} ").strip().lower()
        if not answer:
            return default
        if answer in ("y", "yes", "s", "si", "sí"):
            return True
        if answer in ("n", "no"):
            return False
        emit(MSG_INVALID_OPTION)


def ask_text(ask, prompt_key, default=None, **params):
    suffix = f" [{default}]" if default else ""
    answer = ask(f"{text(prompt_key, **params)}{suffix} ").strip()
    return answer or (default or "")


def ask_number(ask, prompt_key, default, low=None, high=None, **params):
    while True:
        raw = ask_text(ask, prompt_key, str(default), **params)
        try:
            value = float(raw)
        except ValueError:
            value = None
        if value is not None and (low is None or value >= low) and (high is None or value <= high):
            return int(value) if value == int(value) else value
        emit(MSG_NUMBER_RANGE, low=low, high=high)


# ================= METADATA REPAIR =================

def prompt_for_field(ask, field, suggested, existing, recent=(), common=()):
    options = []
    seen = set()

    def add(label_key, value):
        if not value or value.lower() in seen:
            return
        seen.add(value.lower())
        options.append((text(label_key, value=value), value))

    add(MSG_FIELD_KEEP_CURRENT, existing)
    add(MSG_FIELD_SUGGESTION, suggested)
    for value in list(recent)[:5]:
        add(MSG_FIELD_RECENT, value)
    for value in common:
        if value and value.lower() not in seen:
            seen.add(value.lower())
            options.append((value, value))
    options.append((text(MSG_FIELD_CUSTOM), CUSTOM))

    selected = choose(ask, MSG_FIELD_SELECT, options, field=field)
    if selected is CUSTOM:
        return ask_text(ask, MSG_FIELD_ENTER, existing or suggested, field=field)
    return selected


def show_fields(values, marked=()):
    for name in REPAIR_FIELDS:
        emit(
            MSG_FIX_FIELD_LINE,
            field=name,
            value=values.get(name) or text(MSG_EMPTY),
            mark=" *" if name in marked else "",
        )


def prompt_for_metadata(ask, filename, inferred, missing_fields, existing, cache):
    """
    Returns (action, values) with action in save / skip / quit and
    values a field -> value mapping for the repair fields.
    """
    emit(MSG_FIX_HEADER, filename=truncate(filename, 58))
    if inferred.source:
        emit(MSG_FIX_SOURCE, source=inferred.source, confidence=inferred.confidence)

    resolved = {}
    suggested = []
    for name in REPAIR_FIELDS:
        if name in missing_fields:
            resolved[name] = getattr(inferred, name)
            if resolved[name]:
                suggested.append(name)
        else:
            resolved[name] = existing.get(name)

    emit(MSG_FIX_CURRENT_HEADER)
    show_fields(resolved, suggested)

    options = []
    if suggested:
        options.append((text(MSG_FIX_ACCEPT), "accept"))
    options += [
        (text(MSG_FIX_EDIT), "edit"),
        (text(MSG_FIX_SKIP), "skip"),
        (text(MSG_FIX_QUIT), "quit"),
    ]

    action = choose(ask, MSG_FIX_WHAT_NEXT, options)

    if action in ("skip", "quit"):
        return action, {}

    if action == "accept":
        return "save", {k: v or "" for k, v in resolved.items()}

    values = {
        "artist": prompt_for_field(ask, "artist", inferred.artist, existing.get("artist"),
                                   cache.recent_artists),
        "title": prompt_for_field(ask, "title", inferred.title, existing.get("title")),
        "genre": prompt_for_field(ask, "genre", inferred.genre, existing.get("genre"),
                                  cache.recent_genres, COMMON_GENRES),
        "album": prompt_for_field(ask, "album", inferred.album, existing.get("album")),
    }

    emit(MSG_FIX_SUMMARY_HEADER)
    show_fields(values)

    if not confirm(ask, MSG_FIX_SAVE_CONFIRM, default=True):
        return "skip", values
    return "save", values
