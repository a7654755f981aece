"""Client-side sync and business-rule engine for goals, key areas and tasks."""
