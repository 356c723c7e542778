"""Shared service-level identifiers."""

SERVICE_NAME = "linklog"
