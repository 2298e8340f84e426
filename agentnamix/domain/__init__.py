"""领域层模型与协议。

包含：
- models: 统一的 Turn / Part / GenerateRequest / GenerateResult 模型。
- agent: Task、AgentConfiguration、RunStatus 等运行模型。
- events: 浏览器动作与项目结构等 UI 副作用事件。
- conversation: 执行循环的对话历史与 AgentStore 抽象。
- exceptions: 业务异常类型定义。
"""
