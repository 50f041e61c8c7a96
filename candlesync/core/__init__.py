"""candlesync core package."""
