"""DiseaseViz - 全球疾病时间序列数据引擎"""

__version__ = "1.0.0"
