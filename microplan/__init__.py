"""Declaration periods and cash-basis tax projection for French micro-entrepreneurs."""
