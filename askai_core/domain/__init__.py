"""领域层模型与异常。

包含：
- models: Domain / SessionState 以及流式事件的数据结构。
- exceptions: 业务异常类型定义。
"""
