"""
工具函数 - 异常、重试、错误报告、调试日志
"""
