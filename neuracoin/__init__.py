"""NeuraCoin virtual trading ledger service"""
