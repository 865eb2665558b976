"""
docfill - 模板字段发现、占位替换、格式转换与批量导出

模块结构：
- config/      运行期配置与日志
- models/      数据模型定义
- extractors/  模板文本抽取（txt/json/csv/docx/xlsx/pdf）
- doc_gen/     字段发现/模板实例化/格式转换/导出
- storage/     模板文件与仓库的参考实现
- pipeline/    批量导出任务编排、归档与进度推送
- services     服务门面
"""

__version__ = "0.1.0"
