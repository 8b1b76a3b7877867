"""Sign-up wizard state machine and submission."""
