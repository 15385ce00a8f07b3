"""Invoice QR Extraction Service.

Decodes the fiscal QR code embedded in scanned invoices (images or PDFs)
through an ordered preprocessing and decoder cascade, parses its structured
fields with a free-text fallback, and drives the work through a bounded
concurrent job queue fed by board webhooks.
"""
