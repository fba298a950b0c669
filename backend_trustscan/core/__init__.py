"""
Core pieces shared by rpc and analytics: exceptions, data models, program ids.

Nothing here imports rpc or analytics, so both can depend on it freely.
"""
