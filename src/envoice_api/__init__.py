"""
HTTP front end for the envoice sync service.
"""
