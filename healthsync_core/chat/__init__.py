"""聊天客户端：会话状态、发送/重试协议与连通性探测。"""
