"""ElementQuote - Cloud Functions.

This package contains the Python Cloud Functions for the ElementQuote
prefabricated building quotation app.

Architecture:
- Pricing engine: cost breakdown, category markups, commission, VAT
- Post-calculation: realized cost entries against the quotation budget
- Quotation reducers: immutable edits, status workflow, versions
- Collaborators: Firestore persistence and AI invoice analysis
"""

__version__ = "0.1.0"
