from __future__ import annotations
from typing import Dict, List, Optional


STAGES: List[Dict] = [
	{
		"id": "preparation",
		"title": "参赛准备",
		"icon": "🎯",
		"steps": [
			{"id": "team", "title": "团队组建评估"},
			{"id": "topic", "title": "选题评估分析"},
			{"id": "resources", "title": "教学资源盘点"},
			{"id": "platform", "title": "平台与工具准备"},
		],
	},
	{
		"id": "preliminary",
		"title": "初赛阶段",
		"icon": "📝",
		"steps": [
			{"id": "lesson-plan", "title": "教案设计生成"},
			{"id": "video-script", "title": "视频脚本设计"},
			{"id": "video-shoot", "title": "视频拍摄指导"},
			{"id": "report", "title": "实施报告撰写"},
			{"id": "standards", "title": "课标人培审核"},
			{"id": "materials", "title": "佐证材料整理"},
		],
	},
	{
		"id": "final",
		"title": "决赛阶段",
		"icon": "🏆",
		"steps": [
			{"id": "presentation-ppt", "title": "说课PPT制作"},
			{"id": "presentation-script", "title": "说课稿撰写"},
			{"id": "teaching-ppt", "title": "授课PPT制作"},
			{"id": "teaching-script", "title": "授课脚本编写"},
			{"id": "qa-prep", "title": "答辩问题准备"},
			{"id": "evidence", "title": "佐证材料制作"},
		],
	},
]

STEP_GUIDANCE: Dict[str, Dict[str, str]] = {
	"preparation": {
		"team": "• 分析团队构成是否合理\n• 提供团队优化建议\n• 评估团队能力匹配度",
		"topic": "• 评估课程选题适合度\n• 分析内容完整性和连续性\n• 识别潜在亮点与赛点",
		"resources": "• 盘点现有教学资源\n• 识别资源缺口\n• 提供资源准备建议",
	},
	"preliminary": {
		"lesson-plan": "• 辅助生成16学时教案\n• 评估教案完整性和规范性\n• 提供优化建议和打分",
		"video-script": "• 生成4段视频拍摄脚本\n• 确保一镜到底的可行性\n• 标注关键教学环节",
		"report": "• 辅助撰写教学实施报告\n• 确保字数和图表要求\n• 评估报告质量打分",
	},
	"final": {
		"presentation-ppt": "• 生成8分钟说课PPT\n• 突出参赛内容亮点\n• 符合决赛展示要求",
		"qa-prep": "• 预测可能的答辩问题\n• 准备标准答案\n• 整理佐证材料",
	},
}

WELCOME_MESSAGE = (
	"您好！我是教学能力大赛专业辅导助手。\n\n我将为您提供：\n✓ 参赛全流程专业指导\n✓ 材料智能生成与评估\n"
	"✓ 基于评分标准的精准打分\n✓ 针对性改进建议\n\n让我们一起冲刺一等奖！请告诉我您目前处于哪个阶段，或者有什么具体需求？"
)

COMPETITION_GROUPS = {
	"public_basic": "公共基础组",
	"professional_1": "专业组一",
	"professional_2": "专业组二",
}


def find_step(stage_id: str, step_id: str) -> Optional[tuple]:
	for stage in STAGES:
		if stage["id"] != stage_id:
			continue
		for step in stage["steps"]:
			if step["id"] == step_id:
				return stage, step
	return None


def step_guidance(stage_id: str, step_id: str) -> str:
	return STEP_GUIDANCE.get(stage_id, {}).get(step_id) or "请告诉我您的具体需求"


PLATFORM_CATEGORIES: List[Dict] = [
	{
		"id": "teaching",
		"name": "教学平台",
		"tools": [
			{"name": "职教云", "description": "在线教学平台", "priority": "high"},
			{"name": "学习通", "description": "移动学习平台", "priority": "high"},
			{"name": "雨课堂", "description": "智慧教学工具", "priority": "medium"},
			{"name": "钉钉课堂", "description": "在线直播教学", "priority": "medium"},
		],
	},
	{
		"id": "interaction",
		"name": "互动工具",
		"tools": [
			{"name": "问卷星", "description": "在线问卷调查", "priority": "high"},
			{"name": "投票工具", "description": "课堂实时投票", "priority": "medium"},
			{"name": "弹幕工具", "description": "课堂互动弹幕", "priority": "low"},
			{"name": "小组协作工具", "description": "团队协作平台", "priority": "medium"},
		],
	},
	{
		"id": "professional",
		"name": "专业软件",
		"tools": [
			{"name": "行业软件", "description": "专业技能训练", "priority": "high"},
			{"name": "仿真软件", "description": "虚拟实训环境", "priority": "medium"},
			{"name": "设计软件", "description": "创意设计工具", "priority": "medium"},
			{"name": "编程环境", "description": "代码开发平台", "priority": "high"},
		],
	},
	{
		"id": "recording",
		"name": "录制设备",
		"tools": [
			{"name": "摄像设备", "description": "高清摄像机", "priority": "high"},
			{"name": "录音设备", "description": "专业麦克风", "priority": "high"},
			{"name": "补光设备", "description": "摄影灯光", "priority": "medium"},
			{"name": "稳定器", "description": "防抖支架", "priority": "medium"},
		],
	},
]


def find_platform_tool(category: str, name: str) -> Optional[Dict]:
	for cat in PLATFORM_CATEGORIES:
		if cat["id"] == category:
			for tool in cat["tools"]:
				if tool["name"] == name:
					return tool
	return None


SHOOTING_CHECKLIST: List[Dict] = [
	{
		"category": "拍摄前准备",
		"items": [
			"场地清洁整理，移除无关物品",
			"检查光线条件，调整补光设备",
			"测试摄像机、麦克风等设备",
			"准备课堂所需教具和材料",
			"学生座位安排和分组确认",
			"教学PPT和软件提前打开测试",
		],
	},
	{
		"category": "拍摄中注意",
		"items": [
			"保持一镜到底，避免暂停",
			"关注学生学习状态和表情",
			"捕捉师生互动和生生互动",
			"展示信息化技术应用场景",
			"记录学生作品和成果展示",
			"注意声音清晰度和画面稳定",
		],
	},
	{
		"category": "应急预案",
		"items": [
			"备用教学活动方案",
			"设备故障处理预案",
			"学生突发状况应对",
			"网络中断应对措施",
			"时间管理调整方案",
		],
	},
]

RESOURCE_TYPES = {
	"textbook": "教材",
	"courseware": "课件",
	"video": "视频",
	"image": "图片素材",
	"case": "案例资料",
	"tool": "工具软件",
	"other": "其他",
}

MATERIAL_TYPES = {
	"student_work": "学生作品",
	"teaching_record": "教学记录",
	"assessment": "考核材料",
	"industry_doc": "企业文件",
	"photo": "教学照片",
	"video_clip": "视频片段",
	"other": "其他材料",
}

EVIDENCE_TYPES = {
	"teaching_video": "教学视频片段",
	"student_achievement": "学生成果展示",
	"innovation_proof": "创新佐证材料",
	"industry_cooperation": "产教融合证明",
	"award_certificate": "获奖证书",
	"other_evidence": "其他佐证",
}

# Targets behind the progress bars
LESSON_PLAN_TARGET = 16
VIDEO_SCRIPT_TARGET = 4
REPORT_WORD_TARGET = 5000
REPORT_CHART_LIMIT = 12
