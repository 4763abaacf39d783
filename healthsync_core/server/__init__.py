"""本地知识库应答服务（FastAPI）。"""
