"""Training course schedule generator"""
