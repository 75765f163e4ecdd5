"""Provider framework: capability contract, fan-out, reconciliation and platforms."""
