"""命令行工具"""
