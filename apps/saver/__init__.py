"""
Saver App - Export Files

Responsibilities:
- Write flattened records to `<stem>.tsv` (header row, tab-delimited)
- Write the same records to `<stem>.json` (2-space indented array)
- Write each format independently through a temporary file
"""
