"""
Document kind descriptors.
"""
