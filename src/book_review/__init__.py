"""
书评润色服务
"""
__version__ = "0.1.0"
