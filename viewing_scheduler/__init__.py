"""Property viewing scheduling and reminder engine"""
