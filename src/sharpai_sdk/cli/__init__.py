"""
CLI 模块。

说明：
- 对外入口为 `sharpai ...`（由 `pyproject.toml` 的 `[project.scripts]` 注册）。
- CLI 仅做“配置解析 + 调用 SDK + JSON 输出”，不复制核心逻辑。
"""
