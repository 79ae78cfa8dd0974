"""对外服务入口。"""
