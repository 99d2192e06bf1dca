"""HTTP surface for webhook-mode accounts."""
