"""Live-reload services: file monitor, render cache, viewer registry and session."""
