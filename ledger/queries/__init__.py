from ledger.queries.summaries import daily_summaries, monthly_summaries

__all__ = ["daily_summaries", "monthly_summaries"]
