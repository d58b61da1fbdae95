"""Slack platform integration."""
