"""
Installation-request submissions: storage, lifecycle and HTTP endpoints.
"""
