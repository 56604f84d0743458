from fx_aggregator import FxAggregator

print(FxAggregator.__version__)  # 0.1.0

# Default Usage: SQLite file in the working directory, API keys from the environment
# (OPENEXCHANGERATES_APP_ID, EXCHANGERATE_API_KEY, FIXER_API_KEY)
fx = FxAggregator()

# Register USDGBP, USDZAR, ZARGBP, GBPUSD (active) and USDEUR, EURGBP (inactive)
fx.seed_pairs()

# One fetch -> persist -> aggregate -> persist cycle
report = fx.run_once()
print(report.outcome, report.skipped_pairs)
# => RunOutcome.COMPLETED []

# Latest published rate for one pair
print(fx.rate("USDGBP"))
# => {'pair_code': 'USDGBP', 'base_currency': 'USD', 'target_currency': 'GBP',
#     'average_rate': Decimal('0.789667'), 'final_rate': Decimal('0.868633'),
#     'markup_applied': Decimal('0.1000'), 'sources_count': 3, 'observed_at': datetime(...)}

# Same lookup by currency codes
print(fx.rate_for("usd", "gbp"))

# Latest rate of several pairs; pairs without a published rate are omitted
print(fx.rates(["USDGBP", "ZARGBP", "EURGBP"]))

# Last 5 published rates, newest first
print(fx.history("USDGBP", limit=5))

# Hourly schedule aligned to the top of the hour (blocks; Ctrl+C to stop)
# fx.scheduler().run_forever()

fx.close()
