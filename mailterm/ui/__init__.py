"""
Terminal user interface for MailTerm.
"""
