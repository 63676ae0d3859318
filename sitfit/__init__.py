"""SitFit virtual try-on backend."""
