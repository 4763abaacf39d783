"""医疗机构定位：定位端口、Places 客户端与结果分类。"""
