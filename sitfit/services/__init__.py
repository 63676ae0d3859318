"""Business services and external provider clients."""
