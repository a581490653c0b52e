"""Subscription lifecycle, pricing and reminder tooling for the study institute."""
