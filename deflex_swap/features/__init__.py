"""Feature modules for the swap pipeline.

Each stage of a swap lives in its own package:

- aggregator: Deflex quote and swap-transaction endpoints
- quote: Quote fetching
- bundle: Bundle decoding
- fee: Fee-collection transaction
- group: Group assembly and signing
- optin: Asset opt-in preflight
- submission: Submission and confirmation
"""
