"""
Posts core miscellaneous helpers
"""
