"""
Core machinery: scope tree, scope walker, visitor composition and the patch engine.
"""
