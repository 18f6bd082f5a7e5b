"""Slot booking core: provider availability, booking lifecycle and payment reconciliation."""
