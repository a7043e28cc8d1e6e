"""
Surface markers shared by intent classification and mention splitting.

Everything here is pure text processing: address tokens, priority emoji,
reminder / cancel / help / question / request cues (English and Japanese),
and the line splitting used for multi-subject messages.
"""

import re

from ..models.work_item import Priority

ADDRESS_PATTERN = re.compile(r'<@([A-Z0-9]+)>')
# Display-name tokens like "@tanaka"; not preceded by a word character so
# e-mail addresses survive.
DISPLAY_NAME_PATTERN = re.compile(r'(?<![\w.])@[^\s@<>]+')
_WHITESPACE = re.compile(r'[ \t　]+')

PRIORITY_MARKERS: dict[Priority, tuple[str, ...]] = {
    Priority.HIGH: ('🔴', ':red_circle:'),
    Priority.MEDIUM: ('🟡', ':yellow_circle:', ':large_yellow_circle:'),
    Priority.LOW: ('🟢', ':green_circle:', ':large_green_circle:'),
}


def _cue_pattern(english: list[str], japanese: list[str]) -> re.Pattern[str]:
    parts = [rf'\b(?:{word})\b' for word in english] + [re.escape(word) for word in japanese]
    return re.compile('|'.join(parts), re.IGNORECASE)


REMINDER_CUES = _cue_pattern(
    [r'remind\w*', r'alert\w*', r'notif\w*', r'ping me'],
    ['リマインド', 'りまいんど', 'アラート', '通知', '知らせて'],
)

CANCEL_CUES = _cue_pattern(
    [r'cancel\w*', r'stop', r'undo', r'delete', r'remove', r'turn off'],
    ['キャンセル', 'きゃんせる', '中止', 'やめて', '取消', '取り消し', '削除'],
)

HELP_CUES = re.compile(
    r'^\s*help\s*[?!.]*\s*$'
    r'|\bwhat can you do\b'
    r'|\bhow (?:do|can|should) (?:i|we) use (?:you|this|the bot)\b'
    r'|\b(?:show|list) (?:me )?(?:the )?commands\b'
    r'|ヘルプ|使い方|何ができる',
    re.IGNORECASE,
)

_QUESTION_MARK = re.compile(r'[?？]')
QUESTION_WORDS = _cue_pattern(
    [
        r'what', r'when', r'where', r'who', r'whom', r'whose', r'why', r'which',
        r'how', r'is there', r'are there', r'did (?:we|anyone|you)', r'has anyone',
    ],
    ['何', 'いつ', 'どこ', '誰', 'なぜ', 'どう', 'どれ', 'ですか', 'ますか'],
)

REQUEST_CUES = _cue_pattern(
    [
        r'please', r'pls', r'could you', r'can you', r'would you', r'make sure',
        r"don'?t forget to", r'need(?:s)? to', r'by (?:today|tonight|tomorrow|eod|end of)',
        r'asap', r'todo', r'to-do',
    ],
    [
        'してください', 'して下さい', 'お願いします', 'お願い', 'おねがい', 'してほしい',
        'しておいて', 'やっておいて', 'までに', '作成して', '対応して', '確認して',
    ],
)


def find_cue(pattern: re.Pattern[str], text: str) -> str | None:
    """Return the first matched cue in ``text``, or None."""
    match = pattern.search(text)
    return match.group(0) if match else None


def has_reminder_cue(text: str) -> bool:
    return REMINDER_CUES.search(text) is not None


def has_cancel_cue(text: str) -> bool:
    return CANCEL_CUES.search(text) is not None


def is_help_request(text: str) -> bool:
    return HELP_CUES.search(text) is not None


def is_question(text: str) -> bool:
    """A question mark plus a question word."""
    return _QUESTION_MARK.search(text) is not None and QUESTION_WORDS.search(text) is not None


def is_request(text: str) -> bool:
    return REQUEST_CUES.search(text) is not None


# =============================================================================
# Addresses and priority markers
# =============================================================================


def extract_addressed_users(text: str) -> list[str]:
    """User ids addressed with ``<@ID>`` tokens, in order of appearance, de-duplicated."""
    seen: dict[str, None] = {}
    for user_id in ADDRESS_PATTERN.findall(text):
        seen.setdefault(user_id, None)
    return list(seen)


def strip_addresses(text: str) -> str:
    """Remove ``<@ID>`` tokens and ``@name`` display names."""
    text = ADDRESS_PATTERN.sub(' ', text)
    return DISPLAY_NAME_PATTERN.sub(' ', text)


def detect_priority_marker(text: str) -> Priority | None:
    """Explicit priority marker in ``text``; the most urgent one wins."""
    for priority in (Priority.HIGH, Priority.MEDIUM, Priority.LOW):
        if any(marker in text for marker in PRIORITY_MARKERS[priority]):
            return priority
    return None


def strip_priority_markers(text: str) -> str:
    for markers in PRIORITY_MARKERS.values():
        for marker in markers:
            text = text.replace(marker, ' ')
    return text


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE.sub(' ', text).strip()


def clean_text(text: str) -> str:
    """Text with addresses and priority markers removed."""
    return normalize_whitespace(strip_priority_markers(strip_addresses(text)))


def split_lines(text: str) -> list[str]:
    """Split on newlines, trim each line and drop empty ones."""
    return [line.strip() for line in text.splitlines() if line.strip()]
