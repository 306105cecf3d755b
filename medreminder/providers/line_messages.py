"""Flex message templates sent to LINE users."""
import math
from typing import Any, Dict, List

REMINDER_COLOR = "#1DB446"
ALERT_COLOR = "#FF0000"
OPEN_APP_LABEL = "アプリで確認"


def _bubble(alt_text: str, contents: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "type": "flex",
        "altText": alt_text,
        "contents": {
            "type": "bubble",
            "body": {"type": "box", "layout": "vertical", "contents": contents},
        },
    }


def _title(text: str, color: str) -> Dict[str, Any]:
    return {"type": "text", "text": text, "weight": "bold", "size": "md", "color": color}


def _body(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text, "wrap": True, "margin": "md"}


def _link_button(url: str) -> Dict[str, Any]:
    return {
        "type": "button",
        "action": {"type": "uri", "label": OPEN_APP_LABEL, "uri": url},
        "style": "link",
        "margin": "md",
    }


def display_days(remaining_days: float) -> int:
    """Days shown to the user, rounded up to a whole day."""
    return int(math.ceil(remaining_days))


def low_supply_text(medication_name: str, remaining_days: float) -> str:
    return f"{medication_name}の残りが少なくなっています。残り約{display_days(remaining_days)}日分です。"


def build_reminder_message(title: str, body: str, session_label: str, url: str) -> Dict[str, Any]:
    """Reminder bubble: title, body tagged with the session, and a dashboard link."""
    return _bubble(
        f"{title} ({session_label})",
        [
            _title(title, REMINDER_COLOR),
            _body(f"{body} ({session_label})"),
            _link_button(url),
        ],
    )


def build_low_supply_message(title: str, medication_name: str, remaining_days: float, url: str) -> Dict[str, Any]:
    """Low-supply bubble with the remaining day count rounded up."""
    return _bubble(
        f"{title}{medication_name}の残りが少なくなっています。",
        [
            _title(title, ALERT_COLOR),
            _body(low_supply_text(medication_name, remaining_days)),
            _link_button(url),
        ],
    )


def build_status_message(title: str, text: str, success: bool = True) -> Dict[str, Any]:
    """Short status bubble used for webhook replies."""
    return _bubble(title, [_title(title, REMINDER_COLOR if success else ALERT_COLOR), _body(text)])


def build_help_message(linked: bool) -> Dict[str, Any]:
    """Help bubble listing the bot commands and the current link status."""
    if linked:
        status_text = "現在、アカウントは連携済みです。"
    else:
        status_text = "現在、アカウントは未連携です。連携コードを送信して連携してください。"

    commands = [
        ("1. アカウント連携", "アプリの設定画面で表示される連携コードを送信してください。"),
        ("2. 連携解除", "アカウント連携を解除します。"),
    ]
    command_rows: List[Dict[str, Any]] = []
    for index, (label, description) in enumerate(commands):
        heading = {"type": "text", "text": label, "weight": "bold"}
        if index:
            heading["margin"] = "md"
        command_rows.append(heading)
        command_rows.append({"type": "text", "text": description, "wrap": True, "size": "sm", "color": "#666666"})

    return _bubble(
        "ヘルプメッセージ",
        [
            {"type": "text", "text": "ご利用可能なコマンド一覧", "weight": "bold", "size": "md", "margin": "md"},
            {"type": "separator", "margin": "md"},
            {
                "type": "text",
                "text": status_text,
                "wrap": True,
                "margin": "md",
                "color": REMINDER_COLOR if linked else ALERT_COLOR,
            },
            {"type": "separator", "margin": "md"},
            {"type": "box", "layout": "vertical", "margin": "lg", "spacing": "sm", "contents": command_rows},
        ],
    )


def build_text_message(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}
