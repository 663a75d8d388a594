"""
Services - 业务逻辑层
"""
