"""Recurrence Validator."""
from typing import Dict, Any, Optional


class RecurrenceValidator:
    """Validate recurrence rule payloads before they are decoded."""

    @staticmethod
    def validate_rule(rule: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate a recurrence rule payload.

        Args:
            rule: Raw rule dict (frequency, interval, days_of_week, end_date)

        Returns:
            Dict with validation result
        """
        result = {
            "valid": True,
            "errors": [],
            "warnings": []
        }

        if rule is None:
            return result

        if not isinstance(rule, dict):
            result["valid"] = False
            result["errors"].append("Recurrence rule must be an object")
            return result

        unknown = set(rule) - {"frequency", "interval", "days_of_week", "end_date"}
        if unknown:
            result["valid"] = False
            result["errors"].append(f"Unknown recurrence fields: {', '.join(sorted(unknown))}")
            return result

        frequency = rule.get("frequency")
        if frequency not in ["daily", "weekly"]:
            result["valid"] = False
            result["errors"].append("Frequency must be one of: daily, weekly")
            return result

        interval = rule.get("interval", 1)
        if isinstance(interval, bool) or not isinstance(interval, int):
            result["valid"] = False
            result["errors"].append(f"Interval must be an integer, got: {interval!r}")
            return result
        if interval < 1:
            # Coerced later, never rejected
            result["warnings"].append(f"Interval {interval} is below 1 and will be treated as 1")

        days = rule.get("days_of_week") or []
        if not isinstance(days, (list, tuple, set)):
            result["valid"] = False
            result["errors"].append("days_of_week must be a list")
            return result

        for i, day in enumerate(days):
            if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
                result["valid"] = False
                result["errors"].append(f"Day at index {i} must be an integer 0-6 (0=Sunday)")
                return result

        if days and frequency == "daily":
            result["warnings"].append("days_of_week is ignored for daily recurrence")

        return result

    @staticmethod
    def validate_priority(priority: str) -> Dict[str, Any]:
        """
        Validate priority value.

        Args:
            priority: Priority string

        Returns:
            Dict with validation result
        """
        result = {
            "valid": True,
            "errors": [],
            "warnings": []
        }

        if not priority:
            return result

        if priority not in ["high", "medium", "low"]:
            result["valid"] = False
            result["errors"].append(f"Priority must be one of: high, medium, low, got: {priority}")

        return result
