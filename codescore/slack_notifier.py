import logging

import httpx

from codescore.config import Settings, settings as default_settings
from codescore.models import Review, Severity

logger = logging.getLogger(__name__)


def error_count(review: Review) -> int:
    return sum(1 for f in review.result.findings if f.kind == Severity.ERROR)


def should_alert(review: Review, threshold: int) -> bool:
    return error_count(review) > 0 or review.score < threshold


def build_message(review: Review) -> dict:
    errors = error_count(review)
    m = review.result.metrics
    return {
        "blocks": [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"codescore Alert: {review.filename} scored {review.score}/100",
                },
            },
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f"*Language:* {review.language}\n"
                        f"*Errors:* {errors}\n"
                        f"*Findings:* {len(review.result.findings)}\n"
                        f"*Summary:* {review.result.summary[:200]}"
                    ),
                },
            },
            {
                "type": "context",
                "elements": [{
                    "type": "mrkdwn",
                    "text": (
                        f"accuracy {m.accuracy} | readability {m.readability} | "
                        f"performance {m.performance} | best practices {m.best_practices} | "
                        f"security {m.security}"
                    ),
                }],
            },
        ]
    }


async def send_slack_alert(review: Review, settings: Settings | None = None) -> bool:
    """Send a Slack alert for a review with errors or a low score. Returns True when sent."""
    settings = settings or default_settings
    if not settings.slack_enabled or not settings.slack_webhook_url:
        logger.info("Slack notifications disabled, skipping")
        return False

    if not should_alert(review, settings.alert_score_threshold):
        logger.info("No errors and score above threshold, skipping Slack alert")
        return False

    try:
        async with httpx.AsyncClient(timeout=settings.slack_timeout) as client:
            resp = await client.post(settings.slack_webhook_url, json=build_message(review))
            if resp.status_code != 200:
                logger.error(f"Slack webhook failed: {resp.status_code} {resp.text}")
                return False
            logger.info("Slack alert sent successfully")
            return True
    except httpx.HTTPError as e:
        logger.error(f"Slack notification failed: {e}")
        return False
