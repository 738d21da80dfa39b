import json
import logging
import os
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIMIT = 1_000_000
ROLLING_WINDOW_HOURS = 5
DEFAULT_LOG_PATH = "data/Log/token_usage.json"


def get_token_limit() -> int:
    """Token budget per user and window, from ``TOKEN_USAGE_LIMIT`` when valid."""
    env_limit = os.environ.get("TOKEN_USAGE_LIMIT")
    if env_limit:
        try:
            parsed = int(env_limit.strip())
        except ValueError:
            logger.warning("Ignoring invalid TOKEN_USAGE_LIMIT %r", env_limit)
        else:
            if parsed > 0:
                return parsed
    return DEFAULT_TOKEN_LIMIT


class TokenLimitStatus:
    def __init__(self, allowed: bool, tokens_used: int, token_limit: int):
        self.allowed = allowed
        self.tokens_used = tokens_used
        self.token_limit = token_limit

    def to_dict(self):
        return {
            "allowed": self.allowed,
            "tokensUsed": self.tokens_used,
            "tokenLimit": self.token_limit,
        }


def _parse_timestamp(entry: Dict[str, Any]) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(entry.get("timestamp", ""))
    except (TypeError, ValueError):
        logger.warning("Token usage entry with bad timestamp: %r", entry)
        return None


def _is_at_or_after(entry: Dict[str, Any], since: datetime) -> bool:
    created_at = _parse_timestamp(entry)
    return created_at is not None and created_at >= since


class TokenUsageLog:
    """JSON file of token usage records, trimmed to the rolling window on write."""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True

    @property
    def log_file(self) -> Path:
        return Path(os.environ.get("TOKEN_USAGE_LOG_PATH") or DEFAULT_LOG_PATH)

    def append(self, entry: Dict[str, Any]):
        """Add ``entry``, dropping records that left the rolling window before it."""
        created_at = _parse_timestamp(entry)
        with self._lock:
            logs = self._read_logs()
            if created_at is not None:
                cutoff = created_at - timedelta(hours=ROLLING_WINDOW_HOURS)
                kept = [log for log in logs if _is_at_or_after(log, cutoff)]
                if len(kept) < len(logs):
                    logger.info("Pruned %d expired token usage entries", len(logs) - len(kept))
                logs = kept
            logs.append(entry)
            self._write_logs(logs)

    def entries_for(self, user_id: str, since: datetime) -> List[Dict[str, Any]]:
        with self._lock:
            logs = self._read_logs()
        return [
            entry for entry in logs
            if entry.get("user_id") == user_id and _is_at_or_after(entry, since)
        ]

    def _read_logs(self) -> List[Dict[str, Any]]:
        if not self.log_file.exists():
            return []
        try:
            with open(self.log_file, "r", encoding="utf-8") as f:
                logs = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Token usage log %s is corrupt: %s", self.log_file, e)
            return []
        if not isinstance(logs, list):
            return []
        return [entry for entry in logs if isinstance(entry, dict)]

    def _write_logs(self, logs: List[Dict[str, Any]]):
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.log_file, "w", encoding="utf-8") as f:
            json.dump(logs, f, indent=2, ensure_ascii=False)


def get_token_usage_log() -> TokenUsageLog:
    """Get singleton TokenUsageLog instance"""
    return TokenUsageLog()


def check_token_limit(user_id: str, now: Optional[datetime] = None) -> TokenLimitStatus:
    """Sum ``user_id``'s tokens over the rolling window and compare with the limit."""
    token_limit = get_token_limit()
    now = now or datetime.now()
    window_start = now - timedelta(hours=ROLLING_WINDOW_HOURS)

    entries = get_token_usage_log().entries_for(user_id, window_start)
    tokens_used = sum(int(entry.get("tokens_used") or 0) for entry in entries)
    return TokenLimitStatus(tokens_used < token_limit, tokens_used, token_limit)


def log_token_usage(
    user_id: str,
    usage: Optional[Dict[str, Any]],
    operation: str,
    model: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Record one call's usage. Returns False when there was nothing to record."""
    if not usage or not usage.get("total_tokens") or usage["total_tokens"] <= 0:
        return False

    entry = {
        "timestamp": (now or datetime.now()).isoformat(),
        "user_id": user_id,
        "tokens_used": usage["total_tokens"],
        "prompt_tokens": usage.get("prompt_tokens"),
        "completion_tokens": usage.get("completion_tokens"),
        "operation": operation,
        "model": model,
    }
    get_token_usage_log().append(entry)
    logger.info("User %s used %s tokens for %s", user_id, usage["total_tokens"], operation)
    return True


def extract_usage(response: Any) -> Optional[Dict[str, int]]:
    """Usage dict (``prompt_tokens``/``completion_tokens``/``total_tokens``) of an LLM reply."""
    metadata = getattr(response, "response_metadata", None) or {}
    token_usage = metadata.get("token_usage") if isinstance(metadata, dict) else None
    if token_usage:
        return {
            "prompt_tokens": token_usage.get("prompt_tokens", 0),
            "completion_tokens": token_usage.get("completion_tokens", 0),
            "total_tokens": token_usage.get("total_tokens", 0),
        }

    usage_metadata = getattr(response, "usage_metadata", None)
    if usage_metadata:
        return {
            "prompt_tokens": usage_metadata.get("input_tokens", 0),
            "completion_tokens": usage_metadata.get("output_tokens", 0),
            "total_tokens": usage_metadata.get("total_tokens", 0),
        }
    return None
