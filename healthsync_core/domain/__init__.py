"""领域层模型与协议。

包含：
- models: Message / ChatRequest / Preferences 等数据模型。
- conversation: 会话列表以及 KeyValueStore 存储端口。
- events: 聊天组件与定位组件之间的搜索通道。
- exceptions: 业务异常类型定义。
"""
