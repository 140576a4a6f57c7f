"""TaskHub realtime notification service package."""
