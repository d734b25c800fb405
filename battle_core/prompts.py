"""Prompt generation for the debate battle"""

from .config import LOW_HP_THRESHOLD
from .types import AttackType, Side

STYLE_NAMES = {
    "A": "辛辣讽刺",
    "B": "客观陈述",
    "C": "另辟蹊径",
}

STYLE_REQUIREMENTS = {
    "A": """
- 使用讽刺、反诘、归谬法，语言带刺
- 重点攻击对方逻辑漏洞""",
    "B": """
- 使用数据、权威引用、事实论证
- 语言冷静专业，重点建立己方防线""",
    "C": """
- 使用角度转换、逆向思维、类比攻击
- 语言出人意料，从侧面突袭，打乱对方节奏""",
}

AGENT_PERSONAS = {
    "pro": '你是《思辨竞技场》的正方辩手"Kimi"，参与生死对决。',
    "con": '你是《思辨竞技场》的反方辩手"DeepSeek"，性格激进好斗。',
}

JUDGE_SYSTEM_PROMPT = """你是《思辨竞技场》的隐藏裁判系统，只负责评估一段辩论发言的质量。

【输入】用户消息是一个JSON对象：
- topic：辩题
- round：当前回合
- attacker：发言方 (pro=正方, con=反方)
- content：本次发言内容

【评估】
1. logicScore：逻辑强度 (0-100)
2. rhetoricScore：修辞魅力 (0-100)
3. counterScore：反击精准 (0-100)
4. isOffTopic：发言是否偏离辩题 (true/false)
5. commentary：20字以内的热血解说

【输出JSON格式】
{"logicScore": 85, "rhetoricScore": 90, "counterScore": 88, "isOffTopic": false, "commentary": "这一击直戳要害！"}

你必须只返回JSON，不要markdown代码块，不要解释。"""


def _low_hp_line(side: Side, hp: int) -> str:
    if hp >= LOW_HP_THRESHOLD:
        return ""
    if side == "pro":
        return "\n- 当前HP告急，语气应更激进，带有背水一战的决绝"
    return "\n- 当前HP告急，开启狂暴模式，使用更极端的论证"


def create_style_prompt(side: Side, topic: str, style: AttackType, hp: int, round_number: int) -> str:
    """System prompt for an agent turn in one of the three attack styles

    Args:
        side: "pro" or "con"
        topic: The debate topic
        style: Attack style category (A/B/C)
        hp: Current HP of the speaking side
        round_number: Current round

    Returns:
        System prompt string
    """
    return f"""{AGENT_PERSONAS[side]}
辩题：{topic}
当前HP：{hp}/1000，回合：{round_number}
攻击风格：{STYLE_NAMES[style]}

【风格要求】{STYLE_REQUIREMENTS[style]}

【输出要求】
- 纯文本，150-250字，不要JSON
- 必须包含至少一个修辞技巧（排比/类比/归谬）
- 结尾留"钩子"逼迫对方回应{_low_hp_line(side, hp)}
- 不要提及游戏规则、血条、分数"""


def create_choice_prompt(side: Side, topic: str, choice: str, hp: int, round_number: int) -> str:
    """System prompt for an agent turn following a free-text direction"""
    return f"""{AGENT_PERSONAS[side]}
辩题：{topic}
当前HP：{hp}/1000，回合：{round_number}
本轮进攻方向：{choice}

【输出要求】
- 纯文本，150-250字，不要JSON
- 围绕"{choice}"这一方向展开论证
- 必须包含至少一个修辞技巧{_low_hp_line(side, hp)}
- 不要提及游戏规则、血条、分数"""


def create_options_prompt(topic: str, round_number: int, history_text: str, side: Side) -> str:
    """Prompt asking for three short reply directions"""
    stance = "正方" if side == "pro" else "反方"
    history_block = f"\n【最近发言】\n{history_text}\n" if history_text else "\n"
    return f"""辩题：{topic}
当前回合：{round_number}，我方立场：{stance}
{history_block}
请为我方给出3个简短的下一步进攻方向，每个不超过8个字。
只返回JSON：{{"options": ["方向1", "方向2", "方向3"]}}"""
