"""配置层：Settings 与全局 settings 实例。"""
