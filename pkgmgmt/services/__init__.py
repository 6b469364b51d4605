"""服务层: 包管理器门面、源码管理注册表、服务容器"""
