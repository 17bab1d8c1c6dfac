"""URL shortener service: short code assignment and cache-then-store resolution."""
