"""Pure classification rules: SLA timers, partner trends, keyword priority."""
