"""Web front for the planner: persistence and JSON API."""
