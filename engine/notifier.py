import logging
import traceback
from typing import Optional, Protocol

import requests

logger = logging.getLogger('pickdriver')


class Notifier(Protocol):
    def notify_turn(self, user_id: int, league_id: int, race_id: int, draft_id: int, pick_index: int) -> None:
        ...


class LogNotifier:
    def notify_turn(self, user_id, league_id, race_id, draft_id, pick_index):
        logger.info(f"Draft {draft_id} (league {league_id}, race {race_id}): pick {pick_index + 1} is on user {user_id}")


class WebhookNotifier:
    """Posts turn notifications to a Discord channel webhook."""

    def __init__(self, webhook_url: str, timeout: float = 5.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def notify_turn(self, user_id, league_id, race_id, draft_id, pick_index):
        payload = {
            "content": f"It is your turn to pick! (league {league_id}, race {race_id}, pick {pick_index + 1})",
            "embeds": [{
                "title": "Draft turn",
                "fields": [
                    {"name": "User", "value": str(user_id), "inline": True},
                    {"name": "Draft", "value": str(draft_id), "inline": True},
                ],
            }],
        }
        response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        response.raise_for_status()


def safe_notify(notifier: Optional[Notifier], user_id: int, league_id: int, race_id: int,
                draft_id: int, pick_index: int) -> None:
    """Deliver a turn notification; failures are logged and never raised."""
    if notifier is None:
        return
    try:
        notifier.notify_turn(user_id, league_id, race_id, draft_id, pick_index)
    except Exception:
        logger.error(traceback.format_exc())
