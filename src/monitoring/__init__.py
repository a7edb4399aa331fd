"""Alert evaluation, rendering and the refresh loop."""
