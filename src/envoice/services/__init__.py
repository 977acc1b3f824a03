"""
Pipeline services: ERP and signing clients, fetch, classification, guard,
submission, reconciliation and field propagation.
"""
