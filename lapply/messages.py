"""LINE message templates sent to end users"""

from datetime import datetime
from typing import Optional

from .utils.timezone import format_datetime_with_weekday

CANCEL_COMMAND = "キャンセル"
CONFIRM_COMMAND = "予約確認"
STOP_COMMAND = "配信停止"
RESUME_COMMANDS = ("再開", "停止解除")
# Auto-reply triggers that also open a consultation request
CONSULTATION_TRIGGERS = ("個別相談希望", "個別相談", "相談希望")


def cancellation_message(slot_at: Optional[datetime]) -> str:
    target = format_datetime_with_weekday(slot_at) if slot_at else "ご予約"
    return f"""ご予約をキャンセルしました。

キャンセル対象：{target}

またのご利用をお待ちしております。"""


def multiple_reservations_message(slot_ats: list[datetime], cancel_url: str) -> str:
    lines = "\n".join(f"・{format_datetime_with_weekday(s)}" for s in slot_ats)
    return f"""キャンセル可能な予約が複数あります。

{lines}

以下のページからキャンセルする予約を選択してください。
{cancel_url}"""


def no_reservation_message() -> str:
    return "現在、予約は登録されていません。"


def reservation_confirmation_message(plan: str, slot_at: datetime) -> str:
    return f"""📋 現在の予約状況

【セミナー情報】
{plan}
📅 {format_datetime_with_weekday(slot_at)}

キャンセルをご希望の場合は「{CANCEL_COMMAND}」と返信してください。"""


def consent_update_message(enabled: bool) -> str:
    if enabled:
        return "通知を再開しました。今後、予約のリマインダーが送信されます。"
    return (
        "通知を停止しました。今後、自動リマインダーは送信されません。\n\n"
        "再開をご希望の場合は「再開」または「停止解除」と返信してください。"
    )


def unknown_command_message() -> str:
    return """ご利用可能なコマンド：
・「予約確認」- 現在の予約を確認
・「キャンセル」- 予約をキャンセル
・「配信停止」- 通知を停止
・「再開」または「停止解除」- 通知を再開"""


def welcome_message(liff_url: str, template: Optional[str] = None) -> str:
    if template:
        return f"{template}\n\n【セミナー申込はこちら】\n{liff_url}"
    return f"友だち追加ありがとうございます！\n\nセミナーのお申込みは下記のリンクからどうぞ。\n{liff_url}"
