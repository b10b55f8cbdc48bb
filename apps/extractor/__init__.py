"""
Extractor App - Billing Event Extraction

Responsibilities:
- Scheduled execution (daily cron via APScheduler) or RUN_ONCE
- Cursor pagination over the billing API events endpoint, bounded by a page budget
- Optional retries of a single page on transient failures (tenacity)
- Flatten event payloads and export them to TSV and JSON
- Hand the TSV to the warehouse loader

Output:
- exports/output.tsv
- exports/output.json
"""
