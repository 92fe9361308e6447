"""
RheoCode 命令行界面
"""

__version__ = "1.0.0"
