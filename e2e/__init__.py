"""End-to-end browser suite for the whatgotdone journaling app."""
