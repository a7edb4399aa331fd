"""
Message catalogs for the billing watcher.

English is the default; Japanese is used for the "ja" language. Templates
containing ``{0}`` take a single positional value (a month label or a year).
"""

import os

from pydantic import BaseModel, ConfigDict

SUPPORTED_LANGUAGES = ("en", "ja")

# gettext precedence order
_HOST_LANGUAGE_VARS = ("LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG")


class Messages(BaseModel):
    """A localized catalog of display strings."""

    model_config = ConfigDict(frozen=True)

    # Tooltip
    title: str
    current_cost: str
    before_credits: str
    credits: str
    total: str
    budget: str
    last_month_format: str
    last_3_months: str
    yearly_format: str
    year_short: str
    last_updated: str
    call_to_action: str
    month_labels: tuple[str, ...]
    timestamp_format: str
    currency_symbols: dict[str, str]
    # States
    not_configured_label: str
    not_configured_tooltip: str
    error_label: str
    error_prefix: str
    # CLI
    project_id_prompt: str
    project_id_required: str
    project_id_invalid: str
    project_id_set: str
    watch_started: str
    watch_stopped: str


EN = Messages(
    title="Google Cloud Billing Watcher",
    current_cost="Current Cost",
    before_credits="Before Credits",
    credits="Credits",
    total="Subtotal",
    budget="Budget",
    last_month_format="Last Month ({0})",
    last_3_months="Last 3 Months",
    yearly_format="Yearly ({0})",
    year_short="YTD",
    last_updated="Last Updated",
    call_to_action="Run 'billing-watcher status' to refresh",
    month_labels=(
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    ),
    timestamp_format="%m/%d/%Y, %I:%M:%S %p",
    currency_symbols={"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥"},
    not_configured_label="Not Configured",
    not_configured_tooltip="Run 'billing-watcher configure' to set the project ID (gcp.project_id)",
    error_label="Error",
    error_prefix="Error: ",
    project_id_prompt="Enter Project ID",
    project_id_required="Please enter a Project ID",
    project_id_invalid="Project ID format is invalid (6-30 chars: lowercase letters, digits, hyphens)",
    project_id_set="Project ID set: ",
    watch_started="Watching billing data every {0} min. Press Ctrl+C to stop.",
    watch_stopped="Stopped watching billing data",
)

JA = Messages(
    title="Google Cloud Billing Watcher",
    current_cost="現在のコスト",
    before_credits="割引前",
    credits="割引額",
    total="小計",
    budget="予算",
    last_month_format="{0}月 (確定)",
    last_3_months="過去3ヶ月",
    yearly_format="{0}年間",
    year_short="年間",
    last_updated="最終更新",
    call_to_action="'billing-watcher status' で今すぐ更新",
    month_labels=tuple(str(month) for month in range(1, 13)),
    timestamp_format="%Y/%m/%d %H:%M:%S",
    currency_symbols={"USD": "$", "EUR": "€", "GBP": "£", "JPY": "￥"},
    not_configured_label="未設定",
    not_configured_tooltip="'billing-watcher configure' でプロジェクト ID を設定してください (gcp.project_id)",
    error_label="エラー",
    error_prefix="エラー: ",
    project_id_prompt="プロジェクト ID を入力してください",
    project_id_required="プロジェクト ID を入力してください",
    project_id_invalid="プロジェクト ID の形式が正しくありません（6-30文字、小文字・数字・ハイフンのみ）",
    project_id_set="プロジェクト ID を設定しました: ",
    watch_started="{0} 分ごとに課金データを更新します。Ctrl+C で終了します。",
    watch_stopped="課金データの監視を終了しました",
)

_CATALOGS = {"en": EN, "ja": JA}


def detect_host_language() -> str:
    """Return the host language tag from the locale environment, if any."""
    for var in _HOST_LANGUAGE_VARS:
        value = os.environ.get(var)
        if value:
            return value
    return ""


def resolve_language(config_language: str | None, host_language: str | None = None) -> str:
    """
    Resolve the effective language.

    Explicit "en"/"ja" always wins; anything else ("auto") follows the host
    language tag, which yields "ja" only when it starts with "ja".
    """
    if config_language in SUPPORTED_LANGUAGES:
        return config_language
    if host_language is None:
        host_language = detect_host_language()
    return "ja" if host_language.lower().startswith("ja") else "en"


def get_messages(language: str) -> Messages:
    """Return the catalog for a resolved language ("en" or "ja")."""
    return _CATALOGS.get(language, EN)
