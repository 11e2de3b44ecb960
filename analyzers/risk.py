"""Entry/stop/target synthesis and advice for held positions."""

from typing import Optional

from loguru import logger

from models.analysis import (
    AnalysisResult,
    BollingerBands,
    Position,
    PriceTarget,
    RiskAnalysis,
    TradeAdvice,
)
from models.config import BUY_THRESHOLD, HOLD_THRESHOLD, EngineConfig
from utils.helpers import price_digits, round_price


class RiskSynthesizer:
    """Builds a long trade plan from the composite score and volatility/structure levels"""

    @staticmethod
    def calculate_risk_management(
        current_price: float,
        atr: float,
        sar: float,
        resistance: float,
        bollinger: BollingerBands,
        total_score: float,
        config: Optional[EngineConfig] = None,
    ) -> RiskAnalysis:
        """
        Derive entry, stop and targets.

        Args:
            current_price: Last close
            atr: Average True Range
            sar: Parabolic SAR
            resistance: 52-week high
            bollinger: Bollinger Bands for the last bar
            total_score: Composite score (0-10)

        Returns:
            RiskAnalysis with prices rounded to cents (four decimals below $1)
        """
        config = config or EngineConfig()

        # Entry
        entry_price = current_price
        entry_source = "Current Price"
        if total_score >= 8:
            if current_price > bollinger.upper:
                entry_price = bollinger.upper
                entry_source = "Breakout Retest"
            elif current_price > bollinger.middle * (1 + config.pullback_premium):
                entry_price = bollinger.middle
                entry_source = "Pullback to SMA 20"
            else:
                entry_source = "Momentum Entry"
        elif total_score >= 6:
            entry_price = max(bollinger.lower, current_price - atr)
            entry_source = "Deep Pullback / Supp"

        # Stop: volatility stop unless a tighter SAR stop sits far enough below entry
        volatility_stop = entry_price - config.stop_atr_mult * atr
        stop_loss = volatility_stop
        sl_source = f"Volatility ({config.stop_atr_mult:g}x ATR)"
        if volatility_stop < sar < entry_price and (entry_price - sar) > config.sar_min_gap_atr * atr:
            stop_loss = sar
            sl_source = "Parabolic SAR (Trend)"

        if stop_loss <= 0 or stop_loss >= entry_price:
            logger.debug(f"Stop {stop_loss:.4f} unusable for entry {entry_price:.4f}; using {config.stop_floor_pct:.0%} floor")
            stop_loss = entry_price * (1 - config.stop_floor_pct)
            sl_source = f"Floor ({config.stop_floor_pct:.0%} below entry)"

        risk_per_share = entry_price - stop_loss

        # Targets
        tp1 = entry_price + risk_per_share * config.conservative_target_ratio
        tp2 = entry_price + risk_per_share * config.aggressive_target_ratio
        tp_source = f"{config.aggressive_target_ratio:.1f}x Risk Target"
        if resistance > entry_price:
            dist_to_res = resistance - entry_price
            if dist_to_res < risk_per_share:
                tp2 = resistance
                tp_source = "Cap at Resistance"
            elif dist_to_res >= risk_per_share * 2.0 and resistance < tp2:
                tp2 = resistance
                tp_source = "Key Resistance Level"

        take_profit = tp2
        rr = (take_profit - entry_price) / risk_per_share if risk_per_share > 0 else 0.0

        # sub-dollar prices keep four decimals so stop and entry stay apart
        digits = price_digits(entry_price)
        return RiskAnalysis(
            entry_price=round_price(entry_price, digits),
            entry_source=entry_source,
            stop_loss=round_price(stop_loss, digits),
            sl_source=sl_source,
            take_profit=round_price(take_profit, digits),
            tp_source=tp_source,
            risk_reward_ratio=round_price(rr),
            thesis=RiskSynthesizer.build_thesis(total_score, rr, entry_price),
            targets=(
                PriceTarget(round_price(tp1, digits), config.conservative_target_ratio, "TP1 (Conservative)"),
                PriceTarget(round_price(tp2, digits), round_price(rr), "TP2 (Aggressive)"),
            ),
        )

    @staticmethod
    def build_thesis(total_score: float, risk_reward: float, entry_price: float) -> str:
        """Score tier decides first; the R:R only refines bullish setups."""
        if total_score < HOLD_THRESHOLD:
            return "Bearish technicals. Momentum is negative. Wait for confirmed reversal."
        if total_score < BUY_THRESHOLD:
            return "Neutral/Choppy. No clear edge currently. Wait for breakout above resistance."
        if risk_reward >= 2.5:
            return (f"Prime Setup (Score {total_score}). Excellent R/R (> 1:2.5). "
                    f"Look for entry near ${entry_price:.2f}.")
        if risk_reward >= 1.5:
            return "Solid Setup. Good momentum, but upside may be capped by resistance."
        return "Extended. Price is high relative to stop. Wait for pullback to improve R/R."

    @staticmethod
    def advise_position(result: AnalysisResult, position: Position) -> TradeAdvice:
        """Hold/add/trim advice for an existing long position based on a fresh analysis"""
        price = result.current_price
        score = result.composite_score
        entry = position.avg_entry_price
        pnl = (price - entry) / entry * 100 if entry > 0 else 0.0

        suggested_stop = result.risk.stop_loss
        if pnl > 5:
            suggested_stop = max(suggested_stop, entry)
        if pnl > 10:
            suggested_stop = max(suggested_stop, result.indicators.bollinger.middle)

        if score < 4:
            if pnl < -5:
                action = 'CUT LOSS'
                reason = (f"Thesis failed (Score {score}). Price is down {pnl:.1f}%. "
                          f"Recommend exit to prevent further drawdown.")
            else:
                action = 'SELL / TRIM'
                reason = (f"Technical score dropped to {score}. Momentum has reversed "
                          f"significantly. Protect capital.")
        elif score >= 8:
            if pnl > 15:
                action = 'TAKE PROFIT'
                reason = (f"Excellent run (+{pnl:.1f}%). Consider scaling out 25-50% and "
                          f"trailing stop to ${suggested_stop:.2f}.")
            elif pnl > 0:
                action = 'BUY MORE'
                reason = (f"Strong momentum (Score {score}) confirmed. Consider adding on "
                          f"pullbacks to SMA 20 if risk allows.")
            else:
                action = 'HOLD'
                reason = "Thesis remains valid. Price is consolidating near entry. Give it room."
        elif pnl > 5:
            action = 'HOLD'
            reason = "Trend is stable but cooling. Ensure Stop Loss is at Break Even."
        elif pnl < -3:
            action = 'SELL / TRIM'
            reason = "Price struggling below entry with neutral momentum. Consider reducing risk."
        else:
            action = 'HOLD'
            reason = "Market is choppy. Maintain position with defined stops."

        return TradeAdvice(
            action=action,
            reason=reason,
            suggested_stop=round_price(suggested_stop, price_digits(suggested_stop)),
            suggested_target=result.risk.take_profit,
            pnl_percent=round_price(pnl),
        )
