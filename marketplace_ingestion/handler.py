"""
AWS Lambda handler for the marketplace order import.

Runs one import pass for a business date and returns the result summary.
Scheduling is provided by the deployment (EventBridge rule or manual invoke).
"""

import json
from datetime import datetime
from typing import Any, Dict

from marketplace_ingestion.config import Config
from marketplace_ingestion.orchestrator import ImportOrchestrator
from marketplace_ingestion.utils.dates import VN_TZ
from marketplace_ingestion.utils.logging_utils import (
    log_error,
    log_section_complete,
    log_section_start,
)


def _business_date(event: Dict[str, Any]) -> str:
    """The requested date, or today in Vietnam time."""
    requested = (event or {}).get("date")
    if requested:
        # Reject anything that is not YYYY-MM-DD before touching the APIs
        return datetime.strptime(str(requested), "%Y-%m-%d").strftime("%Y-%m-%d")
    return datetime.now(VN_TZ).strftime("%Y-%m-%d")


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for one import pass.

    Args:
        event: Optional {"date": "YYYY-MM-DD"}; defaults to today (UTC+7)
        context: Lambda context object

    Returns:
        Dict with statusCode and a JSON body holding the pass result
    """
    try:
        date = _business_date(event)

        log_section_start("Configuration Validation")
        Config.validate()
        log_section_complete("Configuration Validation")

        result = ImportOrchestrator().run(date)

        return {
            "statusCode": 200,
            "body": json.dumps({"date": date, "result": result.to_dict()}),
        }
    except Exception as e:
        log_error("Import Pipeline", str(e))

        return {
            "statusCode": 500,
            "body": json.dumps({"error": str(e)}),
        }
