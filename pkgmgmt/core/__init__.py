"""核心层: 模型、配置、策略、发现与拉取引擎"""
