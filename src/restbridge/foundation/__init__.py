"""Foundation layer: errors, outcome type and configuration."""
