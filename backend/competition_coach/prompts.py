from __future__ import annotations
import json
from typing import Any, Callable, Dict, Optional, Tuple


COMPETITION_EXPERT_PROMPT = """你是一位教学能力大赛的专业导师，拥有多年的参赛和评审经验。你的任务是帮助教师团队冲刺一等奖。

## 你的专业知识
- 深入理解教学能力大赛的评分标准和要求
- 熟悉各个阶段的准备流程和关键要点
- 能够提供准确、可操作的建议和改进意见
- 了解课程思政、信息化教学、产教融合等关键要素

## 沟通风格
- 专业但友好，鼓励式指导
- 给出具体可行的建议，而非空泛的评论
- 关注细节，但不忘记整体战略
- 帮助用户识别亮点和潜在风险

## 关键评分维度
1. 教学设计（教案完整性、目标明确、方法创新）
2. 教学实施（课堂实录质量、互动效果、技术应用）
3. 教学反思（问题分析、改进措施、数据支撑）
4. 课程思政（自然融入、价值引领）
5. 信息化应用（技术选择、深度融合）
6. 产教融合（企业参与、真实案例）

请基于这些专业知识，为用户提供精准的辅导。"""


def build_context_prompt(stage: Optional[str], step: Optional[str], project_title: Optional[str]) -> str:
	return f"当前上下文：\n阶段：{stage}\n步骤：{step}\n项目：{project_title or '未创建'}"


def _dump(value: Any) -> str:
	return json.dumps(value, ensure_ascii=False, indent=2, default=str)


def _lesson_plan(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	lines = []
	if requirements.get("objectives"):
		lines.append(f"教学目标：{requirements['objectives']}")
	if requirements.get("keyPoints"):
		lines.append(f"教学重点：{'、'.join(requirements['keyPoints'])}")
	if requirements.get("difficultPoints"):
		lines.append(f"教学难点：{'、'.join(requirements['difficultPoints'])}")
	return (
		"你是一位资深的职业教育教学设计专家，擅长编写符合教学能力大赛要求的教案。",
		f"""请根据以下信息生成一份完整的教案：

## 课程信息
课程名称：{context.get('courseName')}
本节主题：{requirements.get('title')}
课时：{requirements.get('duration') or 45}分钟
教学对象：{context.get('targetStudents') or '高职学生'}

## 要求
{chr(10).join(lines)}

请生成包含以下内容的教案：
1. 教学分析（学情分析、教材分析）
2. 教学目标（知识、能力、素质目标）
3. 教学重难点及解决策略
4. 教学方法与手段
5. 教学资源
6. 教学过程（导入、新授、巩固、总结、作业）
7. 板书设计
8. 教学反思

要求：
- 融入课程思政元素
- 体现信息化教学手段
- 注重学生活动设计
- 具有可操作性""",
	)


def _video_script(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	return (
		"你是一位经验丰富的教学视频脚本编剧，熟悉教学能力大赛的视频要求。",
		f"""请为以下教学内容生成一份详细的视频拍摄脚本：

## 基本信息
课程：{context.get('courseName')}
内容：{requirements.get('title')}
时长：45分钟（一镜到底）

## 教学设计
{_dump(requirements.get('lessonPlan'))}

请生成包含以下内容的脚本：
1. 整体结构安排（时间轴）
2. 每个环节的具体内容和时间分配
3. 关键教学活动的详细描述
4. 师生互动的设计
5. 信息化手段的使用时机
6. 课程思政融入点
7. 摄像机位建议
8. 注意事项和应变方案

要求：
- 确保一镜到底的可行性
- 明确每个时间点的内容
- 突出亮点和创新点
- 考虑拍摄的连贯性""",
	)


def _implementation_report(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	return (
		"你是一位教学能力大赛的专家，擅长撰写教学实施报告。",
		f"""请基于以下信息生成教学实施报告：

## 项目信息
{_dump(context)}

## 要求
- 字数：4500-5000字
- 图表：不超过12张
- 格式：1.5倍行距

## 内容结构
1. 教学分析（600字）
   - 学情分析
   - 教材分析
   - 学习环境分析

2. 教学设计（1500字）
   - 教学理念与思路
   - 教学目标设计
   - 教学内容组织
   - 教学方法创新
   - 信息化手段应用
   - 课程思政融入

3. 教学实施（1500字）
   - 实施过程描述
   - 关键环节详述
   - 教学互动情况
   - 技术应用实效

4. 教学反思（900字）
   - 教学成效分析（含数据）
   - 问题识别
   - 改进措施
   - 创新点总结

请生成完整的报告内容，要求：
- 突出特色和亮点
- 数据图表支撑
- 逻辑清晰连贯
- 符合评分标准""",
	)


def _presentation_script(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	return (
		"你是教学能力大赛决赛的资深指导教师，擅长编写说课稿。",
		f"""请生成一份8分钟的决赛说课稿：

## 项目信息
{_dump(context)}

## 说课要求
时间：8分钟
内容：介绍整个参赛作品的教学实施报告

## 结构（严格控制时间）
1. 开场（30秒）- 问候和项目概述
2. 教学分析（1.5分钟）- 学情、教材、环境
3. 教学设计（3分钟）- 理念、目标、内容、方法、思政
4. 教学实施（2分钟）- 过程、亮点、效果
5. 教学反思（1分钟）- 成效、改进、创新

要求：
- 语言精炼专业
- 突出核心亮点
- 数据支撑关键论点
- 体现团队优势
- 留下深刻印象""",
	)


def _teaching_script(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	# Steps send the drawn lesson in context; direct callers may use requirements
	drawn = requirements or context
	return (
		"你是教学能力大赛的模拟授课专家，擅长编写精彩的授课脚本。",
		f"""请为决赛模拟授课生成脚本：

## 抽取内容
{_dump(drawn)}

## 授课要求
- 时间：12-16分钟
- 形式：无学生的模拟授课
- 重点：展示教学能力和专业素养

## 脚本结构
1. 导入（2分钟）
2. 新课讲授（8-10分钟）
3. 巩固提升（2-3分钟）
4. 小结（1分钟）

要求：
- 清晰的教学逻辑
- 丰富的多媒体运用
- 生动的语言表达
- 适当的教学互动设计（虽无学生但要体现）
- 突出专业性和教学技能
- 自然融入课程思政""",
	)


def _qa_preparation(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	return (
		"你是教学能力大赛的答辩指导专家，能够预测评委问题。",
		f"""请基于以下参赛作品，预测可能的答辩问题并提供参考答案：

## 作品信息
{_dump(context)}

请生成：
1. 可能的答辩问题（15-20个）
   - 关于教学设计的问题
   - 关于教学实施的问题
   - 关于课程思政的问题
   - 关于信息化应用的问题
   - 关于教学反思的问题
   - 当前教育热点相关问题

2. 每个问题的参考答案
   - 简明扼要（每个答案1-2分钟）
   - 数据支撑
   - 展现专业性
   - 积极正面

3. 答辩策略建议

如可能，请在回答末尾附上一个JSON对象：{{"qa_list": [{{"category": 类别, "question": 问题, "answer": 参考答案}}]}}""",
	)


def _topic_analysis(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	return (
		"你是教学能力大赛的资深评委，擅长评估参赛选题。",
		f"""请评估以下参赛选题：

选题名称：{requirements.get('title')}
选题描述：{requirements.get('description')}

请从可行性、创新性、竞争力三个方面打分（0-100），并给出亮点、风险和改进建议。

仅返回JSON对象：
{{
  "feasibility_score": 数字,
  "innovation_score": 数字,
  "competitiveness_score": 数字,
  "feedback": {{"highlights": [字符串], "risks": [字符串], "suggestions": [字符串]}}
}}""",
	)


def _standards_review(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	return (
		"你是职业教育课程标准与人才培养方案审核专家。",
		f"""请审核教学设计与课程标准、人才培养方案的一致性：

## 课程标准要求
{requirements.get('standards')}

## 人才培养方案
{requirements.get('program')}

仅返回JSON对象：
{{
  "alignment_score": 0-100的数字,
  "feedback": {{"aligned": [一致之处], "gaps": [不一致之处], "suggestions": [改进建议]}}
}}""",
	)


def _presentation_ppt(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	return (
		"你是教学能力大赛决赛的说课PPT设计专家。",
		f"""请基于以下教学设计，生成8分钟说课PPT的大纲：

## 教学设计
{_dump(context)}

仅返回JSON对象：
{{
  "slide_count": 总页数,
  "outline": {{"sections": [{{"title": 章节标题, "slides": 页数, "content": [要点]}}]}}
}}""",
	)


def _teaching_ppt(context: Dict[str, Any], requirements: Dict[str, Any]) -> Tuple[str, str]:
	return (
		"你是教学能力大赛决赛的授课PPT设计专家。",
		f"""请基于以下教案，生成12-16分钟模拟授课PPT的大纲：

## 教案
{_dump(context)}

仅返回JSON对象：
{{
  "slide_count": 总页数,
  "outline": {{"sections": [{{"title": 章节标题, "slides": 页数, "content": [要点]}}]}}
}}""",
	)


TEMPLATES: Dict[str, Callable[[Dict[str, Any], Dict[str, Any]], Tuple[str, str]]] = {
	"lesson_plan": _lesson_plan,
	"video_script": _video_script,
	"implementation_report": _implementation_report,
	"presentation_script": _presentation_script,
	"teaching_script": _teaching_script,
	"qa_preparation": _qa_preparation,
	"topic_analysis": _topic_analysis,
	"standards_review": _standards_review,
	"presentation_ppt": _presentation_ppt,
	"teaching_ppt": _teaching_ppt,
}


class UnsupportedContentType(ValueError):
	pass


def build_content_prompt(content_type: str, context: Optional[Dict[str, Any]], requirements: Optional[Dict[str, Any]]) -> Tuple[str, str]:
	"""Return the (system, user) prompt pair for a content type."""
	template = TEMPLATES.get(content_type)
	if template is None:
		raise UnsupportedContentType(f"不支持的生成类型: {content_type}")
	return template(context or {}, requirements or {})


EVALUATION_CRITERIA: Dict[str, Dict[str, Any]] = {
	"completeness": {
		"weight": 20,
		"items": ["教学目标明确具体", "教学内容完整连贯", "教学方法多样合理", "教学资源丰富实用", "教学评价科学有效"],
	},
	"innovation": {
		"weight": 15,
		"items": ["教学设计有创新点", "信息化手段应用得当", "教学方法改革突出"],
	},
	"ideological": {
		"weight": 15,
		"items": ["课程思政自然融入", "价值引领明确", "育人目标清晰"],
	},
	"practicality": {
		"weight": 20,
		"items": ["教学设计可操作性强", "教学资源准备充分", "教学环节安排合理", "时间分配科学"],
	},
	"studentCentered": {
		"weight": 15,
		"items": ["学生活动设计充分", "师生互动设计合理", "关注学生差异"],
	},
	"consistency": {
		"weight": 15,
		"items": ["与课程标准一致", "与人培方案对应", "各教案之间衔接自然"],
	},
}

EVALUATOR_SYSTEM_PROMPT = "你是一位经验丰富的教学能力大赛评委，负责评估教案质量。"


def build_evaluation_prompt(content: Any) -> str:
	return f"""作为教学能力大赛的专业评委，请对以下教案进行详细评估。

## 评估标准（总分100分）
1. 完整性 (20分)：教学目标、内容、方法、资源、评价等要素是否齐全
2. 创新性 (15分)：教学设计是否有亮点和创新
3. 思政融入 (15分)：课程思政是否自然融入，价值引领是否明确
4. 实用性 (20分)：教学设计是否可操作，资源是否充分
5. 学生中心 (15分)：是否体现学生主体地位，互动设计是否合理
6. 一致性 (15分)：与课标、人培方案是否一致

## 教案内容
{_dump(content)}

请使用 return_evaluation 工具返回评估结果，包括总分、各维度得分与反馈、优点、改进建议和具体可操作的建议。"""


def _dimension_schema() -> Dict[str, Any]:
	return {
		"type": "object",
		"properties": {"score": {"type": "number"}, "feedback": {"type": "string"}},
	}


EVALUATION_FUNCTION: Dict[str, Any] = {
	"name": "return_evaluation",
	"description": "返回教案评估结果",
	"parameters": {
		"type": "object",
		"properties": {
			"overall_score": {"type": "number", "description": "总分 (0-100)"},
			"dimension_scores": {
				"type": "object",
				"properties": {name: _dimension_schema() for name in EVALUATION_CRITERIA},
				"required": list(EVALUATION_CRITERIA),
			},
			"strengths": {"type": "array", "items": {"type": "string"}},
			"improvements": {"type": "array", "items": {"type": "string"}},
			"specific_suggestions": {"type": "array", "items": {"type": "string"}},
		},
		"required": ["overall_score", "dimension_scores", "strengths", "improvements", "specific_suggestions"],
	},
}
